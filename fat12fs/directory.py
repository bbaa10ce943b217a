#!/usr/bin/env python3

# Copyright (c) 2026 Stephen P Smith
# MIT License

"""
FAT12 Root Directory

This module provides the in-memory model of the fixed-size root directory:
- Parsing and packing of 32-byte directory entries.
- Slot lifecycle (empty, deleted, active) and first-fit slot reuse.
- Lookup and deletion of entries by their packed 8.3 name.
- Writing the used part of the table back to the image.

Slots are scanned front to back and the scan stops at the first empty slot,
so an empty slot is never followed by an active or deleted one.
"""

import datetime
import enum
import logging
import struct
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional, Tuple

from .errors import CorruptImageError
from .fat_utils import (decode_fat_date, decode_fat_time, decode_short_name,
                        encode_fat_date, encode_fat_time, format_83_name,
                        pack_83_name)
from .layout import ImageLayout, DIR_ENTRY_SIZE

logger = logging.getLogger(__name__)

DIR_END_MARKER = 0x00
DIR_DELETED_MARKER = 0xE5

ATTR_ARCHIVE = 0x20  # regular file

# name, attribute, reserved, time, date, start cluster, size
ENTRY_FORMAT = '<11sB10sHHHI'
DELETED_RECORD = bytes([DIR_DELETED_MARKER]) + bytes(DIR_ENTRY_SIZE - 1)


@dataclass
class DirectoryEntry:
    """One active 32-byte directory record"""
    name: bytes
    attributes: int = ATTR_ARCHIVE
    time: int = 0
    date: int = 0
    cluster: int = 0
    size: int = 0
    reserved: bytes = field(default=bytes(10), repr=False)

    @classmethod
    def parse(cls, record: bytes) -> 'DirectoryEntry':
        name, attributes, reserved, time, date, cluster, size = struct.unpack(ENTRY_FORMAT, record)
        return cls(name=name, attributes=attributes, time=time, date=date,
                   cluster=cluster, size=size, reserved=reserved)

    def pack(self) -> bytes:
        return struct.pack(ENTRY_FORMAT, self.name, self.attributes, self.reserved,
                           self.time, self.date, self.cluster, self.size)

    @property
    def base(self) -> str:
        return decode_short_name(self.name)[0]

    @property
    def extension(self) -> str:
        return decode_short_name(self.name)[1]

    @property
    def display_name(self) -> str:
        return format_83_name(self.name)

    @property
    def date_str(self) -> str:
        return decode_fat_date(self.date)

    @property
    def time_str(self) -> str:
        return decode_fat_time(self.time)


class SlotState(enum.Enum):
    EMPTY = 'empty'
    DELETED = 'deleted'
    ACTIVE = 'active'


@dataclass(frozen=True)
class Slot:
    state: SlotState
    entry: Optional[DirectoryEntry] = None


EMPTY_SLOT = Slot(SlotState.EMPTY)
DELETED_SLOT = Slot(SlotState.DELETED)


class DirectoryTable:
    """Fixed-capacity array of root directory slots"""

    def __init__(self, layout: ImageLayout, slots: Optional[List[Slot]] = None):
        self.layout = layout
        if slots is None:
            slots = [EMPTY_SLOT] * layout.slot_count
        elif len(slots) != layout.slot_count:
            raise ValueError(f"Expected {layout.slot_count} directory slots, got {len(slots)}")
        self.slots = list(slots)

    @classmethod
    def load(cls, raw: bytes, layout: ImageLayout) -> 'DirectoryTable':
        """
        Parse the raw directory region.

        Records are classified by the first byte of their name. Everything
        after the first empty slot is treated as empty and never parsed.

        Args:
            raw: Bytes read from the directory region.
            layout: Image layout describing the slot count.

        Returns:
            The parsed DirectoryTable.
        """
        if len(raw) < layout.directory_bytes:
            logger.critical(f"Directory region too short: {len(raw)} bytes")
            raise CorruptImageError(
                f"Directory region is {len(raw)} bytes, expected {layout.directory_bytes}"
            )

        slots = []
        for index in range(layout.slot_count):
            record = raw[index * DIR_ENTRY_SIZE:(index + 1) * DIR_ENTRY_SIZE]
            marker = record[0]
            if marker == DIR_END_MARKER:
                break
            if marker == DIR_DELETED_MARKER:
                slots.append(DELETED_SLOT)
            else:
                slots.append(Slot(SlotState.ACTIVE, DirectoryEntry.parse(record)))

        logger.debug(f"Loaded directory: {len(slots)} used slot(s) of {layout.slot_count}")
        slots.extend([EMPTY_SLOT] * (layout.slot_count - len(slots)))
        return cls(layout, slots)

    def _used_slots(self):
        """Yield (index, slot) pairs up to, not including, the first empty slot"""
        for index, slot in enumerate(self.slots):
            if slot.state is SlotState.EMPTY:
                return
            yield index, slot

    def _first_empty(self) -> int:
        for index, slot in enumerate(self.slots):
            if slot.state is SlotState.EMPTY:
                return index
        return len(self.slots)

    def _find_active_index(self, name: str) -> Optional[int]:
        packed = pack_83_name(name)
        for index, slot in self._used_slots():
            if slot.state is SlotState.ACTIVE and slot.entry.name == packed:
                return index
        return None

    def find_free_slot(self, start: int = 0) -> Optional[int]:
        """First empty or deleted slot at or after ``start``"""
        for index in range(start, len(self.slots)):
            if self.slots[index].state is not SlotState.ACTIVE:
                return index
        return None

    def add_entry(self, index: int, name: str, size: int, start_cluster: int,
                  timestamp: Optional[datetime.datetime] = None) -> DirectoryEntry:
        """
        Store an active file record in slot ``index``.

        Args:
            index: Slot to use (must be deleted, or the first empty slot).
            name: 'BASE.EXT' name, packed to 8.3.
            size: File size in bytes.
            start_cluster: First cluster of the file's chain (0 for empty files).
            timestamp: Modification time (defaults to now).

        Returns:
            The new DirectoryEntry.
        """
        if not 0 <= index < len(self.slots):
            raise IndexError(f"Directory slot {index} out of range")
        if self.slots[index].state is SlotState.ACTIVE:
            raise ValueError(f"Directory slot {index} is already in use")
        if index > self._first_empty():
            raise ValueError(f"Directory slot {index} would follow an empty slot")

        packed = pack_83_name(name)
        # The first name byte doubles as the slot state marker
        if packed[0] in (DIR_END_MARKER, DIR_DELETED_MARKER):
            raise ValueError(f"Name {name!r} starts with a reserved directory marker byte")

        if timestamp is None:
            timestamp = datetime.datetime.now()

        entry = DirectoryEntry(
            name=packed,
            attributes=ATTR_ARCHIVE,
            time=encode_fat_time(timestamp),
            date=encode_fat_date(timestamp),
            cluster=start_cluster,
            size=size,
        )
        self.slots[index] = Slot(SlotState.ACTIVE, entry)
        logger.debug(f"Directory slot {index}: '{entry.display_name}' at cluster {start_cluster}, {size} bytes")
        return entry

    def find_active(self, name: str) -> Optional[DirectoryEntry]:
        """Active entry whose packed 8.3 name matches ``name``"""
        index = self._find_active_index(name)
        if index is None:
            return None
        return self.slots[index].entry

    def delete_entry(self, name: str) -> Optional[Tuple[int, int]]:
        """
        Mark the entry named ``name`` as deleted.

        Returns:
            (start_cluster, size) of the removed entry so its chain can be
            freed, or None if no such entry exists.
        """
        index = self._find_active_index(name)
        if index is None:
            return None
        entry = self.slots[index].entry
        self.slots[index] = DELETED_SLOT
        logger.debug(f"Directory slot {index}: '{entry.display_name}' marked deleted")
        return entry.cluster, entry.size

    def active_entries(self) -> List[DirectoryEntry]:
        return [slot.entry for _, slot in self._used_slots() if slot.state is SlotState.ACTIVE]

    def encode_used(self) -> bytes:
        """Pack every slot before the first empty one"""
        records = []
        for _, slot in self._used_slots():
            if slot.state is SlotState.ACTIVE:
                records.append(slot.entry.pack())
            else:
                records.append(DELETED_RECORD)
        return b''.join(records)

    def flush(self, f: BinaryIO):
        """Write the used slots to the directory region of an open image"""
        f.seek(self.layout.directory_offset)
        f.write(self.encode_used())
