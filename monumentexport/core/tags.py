# SPDX-License-Identifier: GPL-3.0-or-later
"""
Tag folder export for monumentexport.

With --tags-as-folders every tagged item gets one extra copy per tag under
``<user>/tags/Tag_<name>/``. Each copy carries the item's complete tag
list in its metadata, not just the tag naming the folder.

Copyright (C) 2024 monumentexport Contributors
Licensed under GPL-3.0-or-later
"""

from pathlib import Path
from typing import List, Optional

from .errors import MetadataError
from .exif import MetadataRewriter
from .file_operations import copy_content, set_file_timestamp, unique_name
from .models import ContentRecord
from .sanitize import sanitize_tag_name
from .statistics import RunStatistics
from .utils import debug, warn

TAGS_DIR = "tags"


class TagFanoutExporter:
    """Produce one physical copy of a file per tag."""

    def __init__(
        self,
        destination_root: Path,
        rewriter: MetadataRewriter,
        stats: RunStatistics,
        save_comments: bool = False,
        export_gps: bool = False,
        dry_run: bool = False,
    ):
        self.destination_root = Path(destination_root)
        self.rewriter = rewriter
        self.stats = stats
        self.save_comments = save_comments
        self.export_gps = export_gps
        self.dry_run = dry_run

    def tag_dir(self, user_dir: str, tag: str) -> Path:
        return self.destination_root / user_dir / TAGS_DIR / sanitize_tag_name(tag)

    def export(
        self,
        source: Path,
        user_dir: str,
        record: ContentRecord,
        tags: List[str],
        timestamp: Optional[float] = None,
    ) -> int:
        """
        Copy source into every tag folder of the record.

        A failure for one tag is reported and skipped; the remaining tags
        are still exported.

        Returns:
            Number of tag copies produced
        """
        produced = 0
        folders = {}
        for tag in tags:
            folder = sanitize_tag_name(tag)
            if folder in folders:
                debug(
                    f"Tags '{folders[folder]}' and '{tag}' share the folder {folder}"
                )
            folders.setdefault(folder, tag)

            try:
                dest = self._export_one(source, user_dir, record, tags, tag, timestamp)
            except (OSError, MetadataError) as e:
                warn(f"Tag folder export failed for '{tag}' ({record.filename}): {e}")
                self.stats.tag_failures += 1
                continue

            debug(f"Tag copy: {dest}")
            self.stats.tag_copies += 1
            self.stats.per_tag[tag] += 1
            produced += 1

        return produced

    def _export_one(
        self,
        source: Path,
        user_dir: str,
        record: ContentRecord,
        tags: List[str],
        tag: str,
        timestamp: Optional[float],
    ) -> Path:
        tag_dir = self.tag_dir(user_dir, tag)
        name = unique_name(tag_dir, record.filename, record.checksum, self.dry_run)
        dest = tag_dir / name

        if not self.dry_run:
            copy_content(source, dest)

        has_gps = self.export_gps and record.has_gps
        try:
            self.rewriter.rewrite(
                dest,
                caption=record.caption if self.save_comments else None,
                latitude=record.latitude if has_gps else None,
                longitude=record.longitude if has_gps else None,
                tags=tags,
                source=source,
                dry_run=self.dry_run,
            )
        except MetadataError:
            # A tag copy without its keywords is not kept
            if not self.dry_run:
                dest.unlink(missing_ok=True)
            raise

        if not self.dry_run:
            set_file_timestamp(dest, timestamp)
        return dest
