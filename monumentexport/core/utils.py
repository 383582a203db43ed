# SPDX-License-Identifier: GPL-3.0-or-later
"""
Utility functions for monumentexport.

General-purpose helpers used across the toolkit.

Copyright (C) 2024 monumentexport Contributors
Licensed under GPL-3.0-or-later
"""

import os
from pathlib import Path
from typing import Optional

from tqdm import tqdm


def format_size(size_bytes: int) -> str:
    """Format file size in human readable format."""
    if size_bytes == 0:
        return "0 B"

    size_names = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while size_bytes >= 1024 and i < len(size_names) - 1:
        size_bytes /= 1024.0
        i += 1

    return f"{size_bytes:.1f} {size_names[i]}"


def console(message: str) -> None:
    """Print a line without tearing an active progress bar."""
    tqdm.write(message)


def warn(message: str) -> None:
    console(f"  ⚠️  Warning: {message}")


def debug(message: str) -> None:
    """Print a diagnostic line when MONUMENT_DEBUG is set."""
    if os.environ.get("MONUMENT_DEBUG"):
        console(f"  🔍 {message}")


def find_source_file(source_root: Path, relative_path: Optional[str]) -> Optional[Path]:
    """
    Resolve a content path stored in the database to a file on disk.

    Paths are stored relative to the Monument source root; a leading slash
    is tolerated.
    """
    if not relative_path:
        return None

    path = Path(source_root) / relative_path.lstrip("/\\")
    if path.is_file():
        return path

    return None
