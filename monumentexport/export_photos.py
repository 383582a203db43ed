#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-3.0-or-later
"""
Monument Photo Exporter

Exports photos and videos from a Monument device into a folder tree
organized by user and album:
- Follows shared folder hierarchies to the owner of the top-level folder
- Collision-free file names (checksum suffix, then counter)
- Optional captions, GPS and tags written into JPEG EXIF metadata
- Optional per-tag folder copies and edited versions
- Strictly read-only against the Monument disk

Copyright (C) 2024 monumentexport Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

import argparse
import sys
from pathlib import Path

from . import __version__
from .core import ExportOptions, MonumentExporter, detect_monument_structure
from .core.errors import SourceStoreError
from .core.exif import EXIF_SEGMENT_LIMIT


def _yes_no(flag: bool) -> str:
    return "YES" if flag else "NO"


def print_configuration(args: argparse.Namespace, options: ExportOptions) -> None:
    """Print the run banner with every option."""
    print("=" * 48)
    print(f" Monument Photo Exporter v{__version__}")
    print("=" * 48)
    print()
    print("Configuration:")
    print(f"  Source      : {args.source}")
    print(f"  Destination : {args.dest}")
    print()
    print("Options:")
    print(f"  Flatten structure    : {_yes_no(options.flatten)}")
    print(f"  Export edited files  : {_yes_no(options.save_edits)}")
    print(f"  Save comments to EXIF: {_yes_no(options.save_comments)}")
    print(f"  Export GPS to EXIF   : {_yes_no(options.export_gps)}")
    print(f"  Export tags to EXIF  : {_yes_no(options.export_tags)}")
    print(f"  Tags as folders      : {_yes_no(options.tags_as_folders)}")
    print(f"  Dry run mode         : {_yes_no(options.dry_run)}")
    print()
    print("=" * 48)
    print()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="monument-export",
        description="Export photos from a Monument device to an organized folder structure",
        epilog="""
Examples:
  # Basic export preserving folder structure
  monument-export /mnt/monument /backup/photos

  # Flatten structure and export with all metadata
  monument-export /mnt/monument /backup/photos --flatten --save-comments --export-gps --export-tags

  # Export with edited versions and tag folders
  monument-export /mnt/monument /backup/photos --save-edits --tags-as-folders --save-comments

  # Dry run to see what would be exported
  monument-export /mnt/monument /backup/photos --dryrun --flatten
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("source", type=Path, help="Path to Monument source directory")
    parser.add_argument("dest", type=Path, help="Path to destination export directory")
    parser.add_argument(
        "--flatten",
        action="store_true",
        help="Flatten folder structure (single level per user)",
    )
    parser.add_argument(
        "--save-edits", action="store_true", help="Export edited versions of photos"
    )
    parser.add_argument(
        "--save-comments",
        action="store_true",
        help="Write photo captions to EXIF metadata",
    )
    parser.add_argument(
        "--export-gps", action="store_true", help="Write GPS coordinates to EXIF metadata"
    )
    parser.add_argument(
        "--export-tags", action="store_true", help="Write tags to EXIF metadata"
    )
    parser.add_argument(
        "--tags-as-folders",
        action="store_true",
        help="Create additional copies in tag-based folders",
    )
    parser.add_argument(
        "--dryrun",
        "--dry-run",
        dest="dryrun",
        action="store_true",
        help="Simulate export without copying files",
    )
    parser.add_argument(
        "--db-path", type=Path, help="Override auto-detected database path"
    )
    parser.add_argument(
        "--segment-limit",
        type=int,
        default=EXIF_SEGMENT_LIMIT,
        help=f"Maximum EXIF segment size in bytes (default: {EXIF_SEGMENT_LIMIT})",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.source.exists():
        print(f"❌ Source directory does not exist: {args.source}")
        sys.exit(1)
    if not args.source.is_dir():
        print(f"❌ Source path is not a directory: {args.source}")
        sys.exit(1)

    db_path = args.db_path or detect_monument_structure(args.source)
    if not db_path or not db_path.exists():
        print(f"❌ Monument database not found in: {args.source}")
        print("   Expected structure: monument/.userdata/m.sqlite3")
        print("   Make sure the source directory is the root of a Monument installation")
        print("   or use --db-path to specify the database manually")
        sys.exit(1)

    if args.segment_limit <= 0:
        parser.error("--segment-limit must be a positive number of bytes")

    options = ExportOptions(
        flatten=args.flatten,
        save_edits=args.save_edits,
        save_comments=args.save_comments,
        export_gps=args.export_gps,
        export_tags=args.export_tags,
        tags_as_folders=args.tags_as_folders,
        dry_run=args.dryrun,
        segment_limit=args.segment_limit,
    )

    if not options.dry_run and not args.dest.exists():
        print(f"ℹ️  Creating destination directory: {args.dest}")
        try:
            args.dest.mkdir(parents=True)
        except OSError as e:
            print(f"❌ Failed to create destination directory {args.dest}: {e}")
            sys.exit(1)

    print_configuration(args, options)

    if options.dry_run:
        print("DRY RUN MODE: No files will be copied")
        print()

    exporter = MonumentExporter(args.source, args.dest, options, db_path=db_path)
    try:
        exporter.init()
        print("Starting export...")
        print()
        exporter.export()
    except SourceStoreError as e:
        print(f"\n❌ FATAL: Export failed: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print(f"\n\n⚠️  Export interrupted by user (Ctrl+C)")
        exporter.stats.print_summary(options.dry_run)
        sys.exit(1)
    finally:
        exporter.close()


if __name__ == "__main__":
    main()
