#!/usr/bin/env python3

# Copyright (c) 2026 Stephen P Smith
# MIT License

"""
fat12fs command line
Format, list, save, load and delete files on FAT12 floppy disk images
"""

import sys
import logging
import argparse
from pathlib import Path
from typing import Iterable, List, Optional

from .directory import DirectoryEntry
from .engine import FileTransferEngine
from .errors import FAT12Error
from .fat_utils import derive_83_name
from .image import create_empty_image, write_cluster
from .layout import FORMATS, DEFAULT_FORMAT, ImageLayout

logger = logging.getLogger("fat12fs")


def setup_logging(verbosity: int = 0, log_file: Optional[str] = None):
    """Configure application-wide logging"""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='w'))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(filename)s:%(lineno)d - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )


def format_listing(entries: Iterable[DirectoryEntry]) -> List[str]:
    """One line per file: name, extension, size, date and time"""
    return [
        f"{entry.base:<8} {entry.extension:<3} {entry.size:>10}  {entry.date_str} {entry.time_str}"
        for entry in entries
    ]


def cmd_format(args, layout: ImageLayout) -> int:
    create_empty_image(args.image, layout)
    return 0


def cmd_list(args, layout: ImageLayout) -> int:
    engine = FileTransferEngine(args.image, layout)
    entries = engine.list_directory()
    for line in format_listing(entries):
        print(line)
    print(f"{len(entries)} file(s), {engine.free_space()} bytes free")
    return 0


def cmd_save(args, layout: ImageLayout) -> int:
    engine = FileTransferEngine(args.image, layout)
    data = Path(args.path).read_bytes()
    name = derive_83_name(args.path)

    # The engine never replaces a file, so drop any previous copy first.
    # The old copy is gone even if the new one then fails to fit.
    if engine.find(name) is not None:
        logger.warning(f"Replacing existing file '{name}': the old copy is deleted before the new one is written")
        engine.delete(name)

    engine.save(name, data)
    return 0


def cmd_load(args, layout: ImageLayout) -> int:
    engine = FileTransferEngine(args.image, layout)
    data = engine.load(derive_83_name(args.name))
    sys.stdout.buffer.write(data)
    sys.stdout.buffer.flush()
    return 0


def cmd_delete(args, layout: ImageLayout) -> int:
    engine = FileTransferEngine(args.image, layout)
    engine.delete(derive_83_name(args.name))
    return 0


def cmd_write(args, layout: ImageLayout) -> int:
    data = Path(args.path).read_bytes()
    write_cluster(args.image, layout, args.cluster, data)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fat12fs",
        description="Manage files in the root directory of a FAT12 floppy disk image",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="increase log output (-vv for debug)")
    parser.add_argument("--log-file", help="also write the log to this file")
    parser.add_argument("--format-type", choices=sorted(FORMATS), default=DEFAULT_FORMAT,
                        help=f"floppy geometry (default: {DEFAULT_FORMAT})")
    parser.add_argument("image", help="path to the disk image")

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_format = subparsers.add_parser("format", help="create a blank image")
    p_format.set_defaults(func=cmd_format)

    p_list = subparsers.add_parser("list", help="list the root directory")
    p_list.set_defaults(func=cmd_list)

    p_save = subparsers.add_parser("save", help="copy a host file into the image")
    p_save.add_argument("path", help="host file to store")
    p_save.set_defaults(func=cmd_save)

    p_load = subparsers.add_parser("load", help="write a file from the image to stdout")
    p_load.add_argument("name", help="file name in the image")
    p_load.set_defaults(func=cmd_load)

    p_delete = subparsers.add_parser("delete", help="remove a file from the image")
    p_delete.add_argument("name", help="file name in the image")
    p_delete.set_defaults(func=cmd_delete)

    p_write = subparsers.add_parser("write", help="write raw bytes at a data cluster")
    p_write.add_argument("cluster", type=int, help="first data cluster to overwrite")
    p_write.add_argument("path", help="host file holding the bytes")
    p_write.set_defaults(func=cmd_write)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    try:
        layout = ImageLayout.from_format(args.format_type)
        return args.func(args, layout)
    except (FAT12Error, OSError, ValueError) as e:
        logger.debug(f"Command '{args.command}' failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
