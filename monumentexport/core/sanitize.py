# SPDX-License-Identifier: GPL-3.0-or-later
"""
Filesystem-safe name sanitization for monumentexport.

File names, album/folder names and tag folder names each have their own
rules. All functions are total over strings and idempotent.

Copyright (C) 2024 monumentexport Contributors
Licensed under GPL-3.0-or-later
"""

import re
from typing import Optional

# Characters rejected by at least one of the common target filesystems
FORBIDDEN_CHARS = '/\\:*?"<>|'

FILE_FALLBACK = "unnamed"
CONTAINER_FALLBACK = "unnamed_album"
TAG_FALLBACK = "unnamed_tag"
TAG_PREFIX = "Tag_"

_TRAILING_DOTS_SPACES = re.compile(r"[.\s]+$")
_FORBIDDEN_TABLE = str.maketrans({char: "_" for char in FORBIDDEN_CHARS})


def _replace_forbidden(name: str) -> str:
    return name.translate(_FORBIDDEN_TABLE)


def _strip_container(name: Optional[str]) -> str:
    sanitized = _replace_forbidden((name or "").strip())
    return _TRAILING_DOTS_SPACES.sub("", sanitized)


def sanitize_file_name(name: Optional[str]) -> str:
    """Replace forbidden characters in a file name."""
    if not name or not name.strip():
        return FILE_FALLBACK
    return _replace_forbidden(name)


def sanitize_container_name(name: Optional[str]) -> str:
    """
    Sanitize an album or folder name for use as a directory name.

    Besides replacing forbidden characters, surrounding whitespace and any
    trailing run of dots and spaces are removed (Windows and SMB shares
    reject directory names ending in a dot).
    """
    return _strip_container(name) or CONTAINER_FALLBACK


def sanitize_tag_name(name: Optional[str]) -> str:
    """Sanitize a tag name and give it the tag folder prefix."""
    sanitized = _strip_container(name) or TAG_FALLBACK

    # Already-prefixed names are left alone so the prefix is never doubled
    if sanitized.startswith(TAG_PREFIX):
        return sanitized
    return TAG_PREFIX + sanitized
