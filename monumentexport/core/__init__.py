# SPDX-License-Identifier: GPL-3.0-or-later
"""
monumentexport Core Modules

Core functionality modules for the monumentexport toolkit.

Copyright (C) 2024 monumentexport Contributors
Licensed under GPL-3.0-or-later
"""

# Import main functionality for easy access
from .database import (
    connect_db_readonly,
    detect_monument_structure,
    get_album_membership,
    get_content_tags,
    get_edited_content,
    iter_content_records,
    load_folder_arena,
    load_user_map,
)
from .errors import (
    ExportError,
    HierarchyError,
    MetadataError,
    SegmentTooLargeError,
    SourceStoreError,
)
from .exif import MetadataRewriter, RewriteResult
from .exporter import ExportOptions, MonumentExporter
from .file_operations import (
    copy_content,
    get_best_timestamp,
    set_file_timestamp,
    unique_name,
)
from .hierarchy import HierarchyResolver
from .sanitize import sanitize_container_name, sanitize_file_name, sanitize_tag_name
from .statistics import RunStatistics
from .tags import TagFanoutExporter
from .utils import find_source_file, format_size

__all__ = [
    "connect_db_readonly",
    "detect_monument_structure",
    "get_album_membership",
    "get_content_tags",
    "get_edited_content",
    "iter_content_records",
    "load_folder_arena",
    "load_user_map",
    "ExportError",
    "HierarchyError",
    "MetadataError",
    "SegmentTooLargeError",
    "SourceStoreError",
    "MetadataRewriter",
    "RewriteResult",
    "ExportOptions",
    "MonumentExporter",
    "copy_content",
    "get_best_timestamp",
    "set_file_timestamp",
    "unique_name",
    "HierarchyResolver",
    "sanitize_container_name",
    "sanitize_file_name",
    "sanitize_tag_name",
    "RunStatistics",
    "TagFanoutExporter",
    "find_source_file",
    "format_size",
]
