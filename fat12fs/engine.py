#!/usr/bin/env python3

# Copyright (c) 2026 Stephen P Smith
# MIT License

"""
FAT12 File Transfer Engine
Saves, loads and deletes files while keeping the FAT and directory consistent
"""

import os
import logging
from typing import BinaryIO, List, Optional, Tuple

from .allocation import AllocationTable, FAT_EOC
from .directory import DirectoryEntry, DirectoryTable
from .errors import (CorruptImageError, DirectoryFullError,
                     FAT12Error, NoSpaceError, NotFoundError)
from .layout import ImageLayout, DEFAULT_LAYOUT

logger = logging.getLogger(__name__)


class FileTransferEngine:
    """Handler for files stored in the root directory of a FAT12 image

    Every operation reads the FAT and the directory into memory, validates,
    mutates both tables, and only then writes them back in one step. A
    failed validation leaves the image untouched.
    """

    def __init__(self, image_path: str, layout: ImageLayout = DEFAULT_LAYOUT):
        self.image_path = image_path
        self.layout = layout
        logger.debug(f"Initializing FileTransferEngine with {image_path}")

    def read_tables(self) -> Tuple[AllocationTable, DirectoryTable]:
        """
        Load the primary FAT and the root directory.

        Returns:
            (AllocationTable, DirectoryTable) decoded from the image.

        Raises:
            CorruptImageError: If the image is shorter than its layout.
        """
        image_size = os.path.getsize(self.image_path)
        if image_size < self.layout.total_size:
            logger.critical(f"Image file too small: {image_size} bytes")
            raise CorruptImageError(
                f"Image is {image_size} bytes, expected {self.layout.total_size}"
            )

        with open(self.image_path, 'rb') as f:
            f.seek(self.layout.fat_offset)
            fat_data = f.read(self.layout.fat_bytes)
            f.seek(self.layout.directory_offset)
            dir_data = f.read(self.layout.directory_bytes)

        return (AllocationTable.decode(fat_data, self.layout),
                DirectoryTable.load(dir_data, self.layout))

    def _flush(self, f: BinaryIO, fat: AllocationTable, directory: DirectoryTable):
        """Write the FAT to both copies, then the directory, and verify the FATs"""
        fat_data = fat.encode()
        for offset in self.layout.fat_offsets:
            f.seek(offset)
            f.write(fat_data)
        directory.flush(f)
        f.flush()
        os.fsync(f.fileno())

        # Verify writes
        for i, offset in enumerate(self.layout.fat_offsets):
            f.seek(offset)
            if f.read(len(fat_data)) != fat_data:
                logger.critical(f"FAT write verification failed for FAT #{i+1}")
                raise FAT12Error(f"FAT write verification failed for FAT #{i+1}")

    def list_directory(self) -> List[DirectoryEntry]:
        """Active root directory entries, in slot order"""
        _, directory = self.read_tables()
        return directory.active_entries()

    def find(self, name: str) -> Optional[DirectoryEntry]:
        _, directory = self.read_tables()
        return directory.find_active(name)

    def free_clusters(self) -> int:
        fat, _ = self.read_tables()
        return fat.free_count()

    def free_space(self) -> int:
        """Free space in bytes"""
        return self.free_clusters() * self.layout.cluster_bytes

    def save(self, name: str, data: bytes):
        """
        Store ``data`` as a new file called ``name``.

        The caller must make sure no active entry already uses ``name``; an
        existing file is not replaced.

        Args:
            name: 'BASE.EXT' name, packed to 8.3.
            data: File content.

        Raises:
            NoSpaceError: If there are not enough free clusters.
            DirectoryFullError: If no directory slot is free.
        """
        logger.info(f"Writing file '{name}' ({len(data)} bytes)")
        fat, directory = self.read_tables()
        cluster_bytes = self.layout.cluster_bytes
        clusters_needed = self.layout.clusters_needed(len(data))

        start_cluster = 0  # empty files own no clusters
        if clusters_needed:
            start_cluster = fat.has_free_entries(clusters_needed)
            if start_cluster is None:
                logger.warning(f"Disk full: needed {clusters_needed} clusters, found {fat.free_count()}")
                raise NoSpaceError(
                    f"Not enough free space for '{name}': {clusters_needed} clusters needed, "
                    f"{fat.free_count()} free"
                )

        slot = directory.find_free_slot()
        if slot is None:
            logger.warning(f"Root directory full ({self.layout.slot_count} entries)")
            raise DirectoryFullError(f"Root directory is full, cannot add '{name}'")

        directory.add_entry(slot, name, len(data), start_cluster)

        with open(self.image_path, 'r+b') as f:
            previous = None
            search_from = start_cluster
            for i in range(clusters_needed):
                cluster = fat.find_free_from(search_from)
                if previous is not None:
                    fat.set_next(previous, cluster)

                f.seek(self.layout.cluster_offset(cluster))
                f.write(data[i * cluster_bytes:(i + 1) * cluster_bytes])

                previous = cluster
                search_from = cluster + 1

            if previous is not None:
                fat.set_next(previous, FAT_EOC)

            self._flush(f, fat, directory)

        logger.debug(f"Saved '{name}' in {clusters_needed} cluster(s) from {start_cluster}")

    def load(self, name: str) -> bytes:
        """
        Read the content of the file called ``name``.

        The chain is followed for as many clusters as the recorded size
        needs. A chain that is shorter or longer than that is only logged;
        a short chain yields the bytes read before it ended.

        Raises:
            NotFoundError: If no such file exists.
        """
        fat, directory = self.read_tables()
        entry = directory.find_active(name)
        if entry is None:
            raise NotFoundError(name)

        logger.debug(f"Extracting file '{entry.display_name}' (Size: {entry.size})")
        cluster_bytes = self.layout.cluster_bytes
        steps = self.layout.clusters_needed(entry.size)
        data = bytearray()
        remaining = entry.size
        current = entry.cluster
        previous = entry.cluster

        with open(self.image_path, 'rb') as f:
            for step in range(steps):
                if not fat.is_link(current):
                    logger.warning(
                        f"Cluster chain of '{entry.display_name}' ends before its recorded size "
                        f"(cluster {previous} -> {current:#x} at step {step + 1} of {steps}); "
                        f"returning {len(data)} of {entry.size} bytes"
                    )
                    return bytes(data)

                f.seek(self.layout.cluster_offset(current))
                to_read = min(cluster_bytes, remaining)
                data.extend(f.read(to_read))
                remaining -= to_read

                previous = current
                current = fat.get_next(current)

        if steps and not fat.is_end_of_chain(current):
            logger.warning(
                f"Cluster chain of '{entry.display_name}' does not end at its recorded size "
                f"(cluster {previous} -> {current:#x})"
            )

        return bytes(data)

    def delete(self, name: str):
        """
        Remove the file called ``name`` and free its clusters.

        The directory slot and the chain are released in memory first; the
        image is only written once both succeeded.

        Raises:
            NotFoundError: If no such file exists.
            BrokenChainError: If the chain is shorter than the recorded size.
        """
        logger.info(f"Deleting file '{name}'")
        fat, directory = self.read_tables()

        removed = directory.delete_entry(name)
        if removed is None:
            raise NotFoundError(name)

        start_cluster, size = removed
        fat.free_chain(start_cluster, size)

        with open(self.image_path, 'r+b') as f:
            self._flush(f, fat, directory)
