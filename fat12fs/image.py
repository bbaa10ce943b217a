#!/usr/bin/env python3

# Copyright (c) 2026 Stephen P Smith
# MIT License

"""
Whole-image helpers: blank image creation and raw cluster writes
"""

import os
import logging

from .allocation import AllocationTable
from .errors import FAT12Error
from .layout import ImageLayout, DEFAULT_LAYOUT

logger = logging.getLogger(__name__)


def create_empty_image(filepath: str, layout: ImageLayout = DEFAULT_LAYOUT):
    """
    Create a blank FAT12 image.

    The whole image is zero-filled, then both FAT copies receive the media
    descriptor pattern in their first two entries.

    Args:
        filepath: Path to save the new image.
        layout: Geometry of the image to create.
    """
    logger.info(f"Creating blank image '{filepath}' ({layout.total_size} bytes)")
    fat_data = AllocationTable.blank(layout).encode()

    with open(filepath, 'wb') as f:
        # Write in chunks
        chunk_size = 65536
        zeros = b'\x00' * chunk_size
        remaining = layout.total_size
        while remaining > 0:
            write_size = min(remaining, chunk_size)
            f.write(zeros[:write_size])
            remaining -= write_size

        for offset in layout.fat_offsets:
            f.seek(offset)
            f.write(fat_data)
        f.flush()
        os.fsync(f.fileno())


def write_cluster(filepath: str, layout: ImageLayout, cluster: int, data: bytes):
    """
    Write raw bytes at the start of a data cluster.

    Neither the FAT nor the directory is consulted or updated. The data may
    span several consecutive clusters but must end inside the image.

    Raises:
        FAT12Error: If the cluster is not a data cluster or the data would
            run past the end of the image.
    """
    if not layout.first_data_cluster <= cluster <= layout.max_cluster:
        raise FAT12Error(
            f"Cluster {cluster} is outside the data area "
            f"({layout.first_data_cluster}-{layout.max_cluster})"
        )

    offset = layout.cluster_offset(cluster)
    if offset + len(data) > layout.total_size:
        raise FAT12Error(
            f"{len(data)} bytes at cluster {cluster} would run past the end of the image"
        )

    logger.info(f"Writing {len(data)} raw bytes at cluster {cluster} (offset {offset})")
    with open(filepath, 'r+b') as f:
        f.seek(offset)
        f.write(data)
        f.flush()
        os.fsync(f.fileno())
