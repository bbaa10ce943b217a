#!/usr/bin/env python3

# Copyright (c) 2026 Stephen P Smith
# MIT License

"""
FAT12 exception hierarchy
"""


class FAT12Error(Exception):
    """Base error for all FAT12 image operations"""


class FAT12CorruptionError(FAT12Error):
    """The on-disk structures are inconsistent or malformed"""


class CorruptImageError(FAT12CorruptionError):
    """The image is too short or its FAT region has an invalid length"""


class BrokenChainError(FAT12CorruptionError):
    """A cluster chain ends before the size recorded in its directory entry"""

    def __init__(self, start_cluster: int, cluster: int, step: int, expected_steps: int):
        self.start_cluster = start_cluster
        self.cluster = cluster
        self.step = step
        self.expected_steps = expected_steps
        super().__init__(
            f"Broken cluster chain starting at {start_cluster}: cluster {cluster} "
            f"ends the chain at step {step + 1} of {expected_steps}"
        )


class NoSpaceError(FAT12Error):
    """Not enough free clusters to hold the file data"""


class DirectoryFullError(FAT12Error):
    """Every root directory slot is in use"""


class NotFoundError(FAT12Error):
    """No active directory entry has the requested name"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"File not found: {name}")
