# SPDX-License-Identifier: GPL-3.0-or-later
"""
Exception classes for monumentexport.

Copyright (C) 2024 monumentexport Contributors
Licensed under GPL-3.0-or-later
"""


class ExportError(Exception):
    """Base exception for export errors."""

    pass


class SourceStoreError(ExportError):
    """The Monument database could not be opened or read."""

    pass


class HierarchyError(ExportError):
    """The album folder hierarchy is corrupt (e.g. a parent cycle)."""

    pass


class MetadataError(ExportError):
    """EXIF metadata could not be read or written for a file."""

    pass


class SegmentTooLargeError(MetadataError):
    """Encoded EXIF segment exceeds the configured size ceiling."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"EXIF segment of {size} bytes exceeds limit of {limit}")
        self.size = size
        self.limit = limit
