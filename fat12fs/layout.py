#!/usr/bin/env python3

# Copyright (c) 2026 Stephen P Smith
# MIT License

"""
FAT12 Image Layout
Fixed byte offsets and sizes of each zone within a floppy image
"""

from dataclasses import dataclass

BYTES_PER_SECTOR = 512
RESERVED_SECTORS = 1
NUM_FATS = 2
DIR_ENTRY_SIZE = 32

# Supported Floppy Formats. Only geometries whose FAT region packs into
# whole 3-byte groups are listed.
FORMATS = {
    '1.44MB': {
        'name': '3.5" High Density (1.44 MB)',
        'total_sectors': 2880,
        'sectors_per_cluster': 1,
        'root_entries': 224,
        'media_descriptor': 0xF0,
        'sectors_per_fat': 9,
    },
    '720KB': {
        'name': '3.5" Double Density (720 KB)',
        'total_sectors': 1440,
        'sectors_per_cluster': 2,
        'root_entries': 112,
        'media_descriptor': 0xF9,
        'sectors_per_fat': 3,
    },
    '2.88MB': {
        'name': '3.5" Extra High Density (2.88 MB)',
        'total_sectors': 5760,
        'sectors_per_cluster': 2,
        'root_entries': 224,
        'media_descriptor': 0xF0,
        'sectors_per_fat': 9,
    },
}

DEFAULT_FORMAT = '1.44MB'


@dataclass(frozen=True)
class ImageLayout:
    """Immutable description of where each structure lives in the image.

    Cluster number ``n`` as stored in the FAT or a directory entry maps to
    byte ``data_offset + (n - first_data_cluster) * cluster_bytes``.
    """
    total_size: int
    fat_offset: int
    fat_mirror_offset: int
    fat_bytes: int
    directory_offset: int
    slot_count: int
    data_offset: int
    cluster_bytes: int
    media_descriptor: int = 0xF0
    first_data_cluster: int = 2

    def __post_init__(self):
        if self.fat_bytes <= 0 or self.fat_bytes % 3:
            raise ValueError(f"FAT region length {self.fat_bytes} is not a positive multiple of 3")
        if self.cluster_bytes <= 0:
            raise ValueError(f"Invalid cluster size: {self.cluster_bytes}")
        if self.slot_count <= 0:
            raise ValueError(f"Invalid directory slot count: {self.slot_count}")
        if self.directory_offset + self.directory_bytes > self.data_offset:
            raise ValueError("Directory region overlaps the data region")
        if self.data_offset > self.total_size:
            raise ValueError("Data region starts beyond the end of the image")

    @classmethod
    def from_format(cls, format_key: str = DEFAULT_FORMAT) -> 'ImageLayout':
        """
        Build a layout from one of the standard floppy geometries.

        Args:
            format_key: Key into FORMATS (e.g. '1.44MB').

        Returns:
            The matching ImageLayout.
        """
        if format_key not in FORMATS:
            raise ValueError(f"Unknown format: {format_key}")
        fmt = FORMATS[format_key]

        fat_bytes = fmt['sectors_per_fat'] * BYTES_PER_SECTOR
        fat_offset = RESERVED_SECTORS * BYTES_PER_SECTOR
        directory_offset = fat_offset + NUM_FATS * fat_bytes
        data_offset = directory_offset + fmt['root_entries'] * DIR_ENTRY_SIZE

        return cls(
            total_size=fmt['total_sectors'] * BYTES_PER_SECTOR,
            fat_offset=fat_offset,
            fat_mirror_offset=fat_offset + fat_bytes,
            fat_bytes=fat_bytes,
            directory_offset=directory_offset,
            slot_count=fmt['root_entries'],
            data_offset=data_offset,
            cluster_bytes=fmt['sectors_per_cluster'] * BYTES_PER_SECTOR,
            media_descriptor=fmt['media_descriptor'],
        )

    @property
    def fat_offsets(self):
        return (self.fat_offset, self.fat_mirror_offset)

    @property
    def entry_count(self) -> int:
        """Number of 12-bit entries held by the FAT region"""
        return self.fat_bytes // 3 * 2

    @property
    def directory_bytes(self) -> int:
        return self.slot_count * DIR_ENTRY_SIZE

    @property
    def cluster_count(self) -> int:
        """Number of whole clusters that fit in the data region"""
        return (self.total_size - self.data_offset) // self.cluster_bytes

    @property
    def max_cluster(self) -> int:
        """Highest cluster number that can be allocated"""
        last = self.first_data_cluster + self.cluster_count - 1
        return min(last, self.entry_count - 1, 0xFF6)

    def cluster_offset(self, cluster: int) -> int:
        """Absolute byte offset of a data cluster"""
        return self.data_offset + (cluster - self.first_data_cluster) * self.cluster_bytes

    def clusters_needed(self, size_bytes: int) -> int:
        """Number of clusters required to hold ``size_bytes`` of data"""
        return (size_bytes + self.cluster_bytes - 1) // self.cluster_bytes


DEFAULT_LAYOUT = ImageLayout.from_format(DEFAULT_FORMAT)
