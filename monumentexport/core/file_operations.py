# SPDX-License-Identifier: GPL-3.0-or-later
"""
File operations for monumentexport.

Handles collision-free naming, file copying and timestamp correction.
Source files are only ever read; every write goes to the destination tree.

Copyright (C) 2024 monumentexport Contributors
Licensed under GPL-3.0-or-later
"""

import itertools
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from .hierarchy import TAKEN_FORMAT
from .sanitize import sanitize_file_name

# Timestamps outside this window are treated as garbage
MIN_TIMESTAMP = -2208988800  # 1900-01-01
MAX_TIMESTAMP = 4102444800  # 2100-01-01


def split_name(name: str) -> Tuple[str, str]:
    """
    Split a file name into (basename, extension).

    The extension includes the dot. A leading dot does not start an
    extension, so ``.hidden`` has none.
    """
    last_dot = name.rfind(".")
    if last_dot <= 0:
        return name, ""
    return name[:last_dot], name[last_dot:]


def unique_name(
    dest_dir: Path,
    original_name: str,
    checksum: Optional[str],
    dry_run: bool = False,
) -> str:
    """
    Pick a file name that does not exist yet in dest_dir.

    Candidates, first free one wins:
        1. the sanitized original name
        2. <basename>-<checksum><ext>
        3. <basename>-<checksum>_<n><ext> for n = 1, 2, ...

    Without a checksum, candidate 2 is skipped and candidate 3 becomes
    <basename>_<n><ext>. In dry-run mode candidate 1 is returned without
    looking at the filesystem.
    """
    name = sanitize_file_name(original_name)
    if dry_run:
        return name

    dest_dir = Path(dest_dir)
    if not (dest_dir / name).exists():
        return name

    base, ext = split_name(name)
    if checksum:
        base = f"{base}-{sanitize_file_name(checksum)}"
        candidate = f"{base}{ext}"
        if not (dest_dir / candidate).exists():
            return candidate

    for n in itertools.count(1):
        candidate = f"{base}_{n}{ext}"
        if not (dest_dir / candidate).exists():
            return candidate


def copy_content(source: Path, dest: Path) -> int:
    """
    Copy a file into the export tree, creating parent directories.

    Returns:
        Number of bytes copied

    Raises:
        FileNotFoundError: if the source file does not exist
        OSError: on any other copy failure
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, dest)
    return dest.stat().st_size


def parse_taken_timestamp(taken: Optional[str]) -> Optional[float]:
    """Convert a ``yyyy-MM-dd HH:mm:ss`` value to seconds since epoch."""
    if not taken:
        return None

    try:
        return datetime.strptime(taken.strip(), TAKEN_FORMAT).timestamp()
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def get_best_timestamp(source: Path, taken: Optional[str] = None) -> Optional[float]:
    """
    Pick the timestamp to stamp onto an exported file.

    Prefers the modification time of the original file, then the
    captured-at value from the database.

    Returns:
        Timestamp in seconds since epoch, or None if no usable timestamp
    """
    candidates = []
    try:
        candidates.append(Path(source).stat().st_mtime)
    except OSError:
        pass
    candidates.append(parse_taken_timestamp(taken))

    for timestamp in candidates:
        if (
            isinstance(timestamp, (int, float))
            and timestamp == timestamp  # NaN check
            and MIN_TIMESTAMP <= timestamp <= MAX_TIMESTAMP
        ):
            return timestamp

    return None


def set_file_timestamp(dest: Path, timestamp: Optional[float]) -> bool:
    """
    Set access and modification time of an exported file.

    Failures are ignored: timestamps are cosmetic and never fail an export.

    Returns:
        True if the timestamp was applied, False otherwise
    """
    if timestamp is None:
        return False

    try:
        os.utime(dest, (timestamp, timestamp))
        return True
    except (OSError, TypeError, ValueError, OverflowError):
        return False
