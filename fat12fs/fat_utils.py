import datetime
from pathlib import Path
from typing import Tuple

DIR_SHORT_NAME_LEN = 11
DIR_BASE_LEN = 8
DIR_EXT_LEN = 3


def decode_fat_time(time_value: int) -> str:
    """Decode FAT time format to HH:MM:SS string

    Bits 15-11: Hours (0-23)
    Bits 10-5: Minutes (0-59)
    Bits 4-0: Seconds/2 (0-29, multiply by 2 to get actual seconds)
    """
    hours = (time_value >> 11) & 0x1F
    minutes = (time_value >> 5) & 0x3F
    seconds = (time_value & 0x1F) * 2
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def decode_fat_date(date_value: int) -> str:
    """Decode FAT date format to YYYY-MM-DD string

    Bits 15-9: Year (0 = 1980, 127 = 2107)
    Bits 8-5: Month - 1 (0-11)
    Bits 4-0: Day (1-31)
    """
    year = ((date_value >> 9) & 0x7F) + 1980
    month = ((date_value >> 5) & 0x0F) + 1
    day = date_value & 0x1F

    # Handle invalid dates
    if month > 12 or day < 1 or day > 31:
        return "Invalid"

    return f"{year:04d}-{month:02d}-{day:02d}"


def encode_fat_time(dt: datetime.datetime) -> int:
    """Encode datetime to FAT time format"""
    return (dt.hour << 11) | (dt.minute << 5) | (dt.second // 2)


def encode_fat_date(dt: datetime.datetime) -> int:
    """Encode datetime to FAT date format (month stored zero-based)"""
    return ((dt.year - 1980) << 9) | ((dt.month - 1) << 5) | dt.day


def is_valid_83_char(char: str) -> bool:
    """Check if character is valid in 8.3 filename (Windows compatible)"""
    # Valid characters: A-Z, 0-9, and special chars
    # Windows allows: ! # $ % & ' ( ) - @ ^ _ ` { } ~
    if char.isalnum() and char.isascii():
        return True
    valid_special = "!#$%&'()-@^_`{}~"
    return char in valid_special


def split_name(name: str) -> Tuple[str, str]:
    """Split 'BASE.EXT' at the last dot; a name without a dot has no extension"""
    base, dot, ext = name.rpartition('.')
    if not dot:
        return name, ''
    return base, ext


def pack_83_name(name: str) -> bytes:
    """Pack a 'BASE.EXT' name into the 11-byte on-disk form

    The base is truncated or space padded to 8 bytes and the extension to 3.
    Case is preserved.
    """
    base, ext = split_name(name)
    base_bytes = base.encode('ascii', 'replace')[:DIR_BASE_LEN].ljust(DIR_BASE_LEN, b' ')
    ext_bytes = ext.encode('ascii', 'replace')[:DIR_EXT_LEN].ljust(DIR_EXT_LEN, b' ')
    return base_bytes + ext_bytes


def decode_short_name(raw_name: bytes) -> Tuple[str, str]:
    """Return the (base, extension) pair of an 11-byte name, without padding"""
    base = raw_name[:DIR_BASE_LEN].decode('ascii', errors='replace').rstrip()
    ext = raw_name[DIR_BASE_LEN:DIR_SHORT_NAME_LEN].decode('ascii', errors='replace').rstrip()
    return base, ext


def format_83_name(raw_name: bytes) -> str:
    """Convert an 11-byte packed name to 'NAME.EXT'"""
    base, ext = decode_short_name(raw_name)
    return f"{base}.{ext}" if ext else base


def derive_83_name(host_path: str) -> str:
    """Derive an 8.3 'NAME.EXT' name from a host file path

    Follows the simple truncation scheme (like Linux mount -o nonumtail):
    1. Convert to uppercase
    2. Remove leading/trailing spaces and dots
    3. Remove invalid characters (including embedded spaces)
    4. Keep the first 8 characters of the base and 3 of the extension

    Raises:
        ValueError: If nothing usable is left of the base name.
    """
    path_obj = Path(host_path)
    name = path_obj.stem.upper().strip(" .")
    ext = path_obj.suffix.lstrip(".").upper().strip(" .")

    name = "".join(c for c in name if is_valid_83_char(c))[:DIR_BASE_LEN]
    ext = "".join(c for c in ext if is_valid_83_char(c))[:DIR_EXT_LEN]

    if not name:
        raise ValueError(f"Cannot derive an 8.3 name from '{host_path}'")

    return f"{name}.{ext}" if ext else name
