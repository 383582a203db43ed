# SPDX-License-Identifier: GPL-3.0-or-later
"""
Export orchestration for monumentexport.

Runs one sequential pass over every non-deleted content record: resolve the
destination, copy the file under a collision-free name, fix its timestamp,
then optionally rewrite metadata, fan out tag folder copies and export the
edited version.

Copyright (C) 2024 monumentexport Contributors
Licensed under GPL-3.0-or-later
"""

import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from .database import (
    connect_db_readonly,
    count_content_records,
    detect_monument_structure,
    get_content_tags,
    get_edited_content,
    iter_content_records,
    load_folder_arena,
    load_user_map,
)
from .errors import HierarchyError, MetadataError, SourceStoreError
from .exif import EXIF_SEGMENT_LIMIT, MetadataRewriter
from .file_operations import (
    copy_content,
    get_best_timestamp,
    parse_taken_timestamp,
    set_file_timestamp,
    split_name,
    unique_name,
)
from .hierarchy import HierarchyResolver
from .models import ContentRecord
from .sanitize import sanitize_file_name
from .statistics import RunStatistics
from .tags import TagFanoutExporter
from .utils import console, find_source_file, warn

EDITED_SUFFIX = "_edited"


@dataclass
class ExportOptions:
    """Switches for one export run."""

    flatten: bool = False
    save_edits: bool = False
    save_comments: bool = False
    export_gps: bool = False
    export_tags: bool = False
    tags_as_folders: bool = False
    dry_run: bool = False
    segment_limit: int = EXIF_SEGMENT_LIMIT

    @property
    def rewrite_metadata(self) -> bool:
        return self.save_comments or self.export_gps or self.export_tags


class MonumentExporter:
    """Export every content record of a Monument database into a file tree."""

    def __init__(
        self,
        source_dir: Path,
        destination_dir: Path,
        options: Optional[ExportOptions] = None,
        db_path: Optional[Path] = None,
    ):
        self.source_dir = Path(source_dir)
        self.destination_dir = Path(destination_dir)
        self.options = options or ExportOptions()
        self.db_path = Path(db_path) if db_path else None

        self.conn = None
        self.user_names = {}
        self.resolver = None
        self.stats = RunStatistics()
        self.rewriter = MetadataRewriter(self.options.segment_limit)
        self.tag_exporter = TagFanoutExporter(
            self.destination_dir,
            self.rewriter,
            self.stats,
            save_comments=self.options.save_comments,
            export_gps=self.options.export_gps,
            dry_run=self.options.dry_run,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def init(self) -> None:
        """
        Open the database and load the user map and folder hierarchy.

        Raises:
            SourceStoreError: if the database cannot be found or read
        """
        db_path = self.db_path or detect_monument_structure(self.source_dir)
        if db_path is None:
            raise SourceStoreError(
                f"Monument database not found below {self.source_dir}"
            )

        print(f"ℹ️  Database file is {db_path}")
        self.conn = connect_db_readonly(db_path)
        self.user_names = load_user_map(self.conn)

        try:
            folders = load_folder_arena(self.conn)
        except sqlite3.Error as e:
            raise SourceStoreError(f"Could not read album folders: {e}") from e

        self.resolver = HierarchyResolver(
            self.conn, self.user_names, folders, flatten=self.options.flatten
        )

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def export(self) -> RunStatistics:
        """
        Export all non-deleted content records.

        Raises:
            SourceStoreError: if the content table cannot be read
        """
        if self.conn is None:
            self.init()

        try:
            total = count_content_records(self.conn)
            with tqdm(
                iter_content_records(self.conn),
                total=total,
                desc="Exporting",
                unit="files",
                dynamic_ncols=True,
                leave=False,
            ) as pbar:
                for record in pbar:
                    self.export_record(record)
        except sqlite3.Error as e:
            raise SourceStoreError(f"Could not read content records: {e}") from e

        if self.options.dry_run:
            print(
                f"✅ Successfully simulated the export of {self.stats.files_exported} files"
            )
        else:
            print(f"✅ Successfully exported {self.stats.files_exported} files")

        self.stats.print_summary(self.options.dry_run)
        return self.stats

    def export_record(self, record: ContentRecord) -> bool:
        """
        Export one content record with all enabled side exports.

        Returns:
            True if the primary file was exported, False if the record was skipped
        """
        stats = self.stats
        dry_run = self.options.dry_run
        stats.records_seen += 1

        try:
            dd = self.resolver.resolve(record.id, record.user_id, record.taken)
        except (sqlite3.Error, HierarchyError) as e:
            warn(f"Skipping content {record.id} ({record.path}): {e}")
            stats.records_skipped += 1
            return False

        destination = self.destination_dir / dd.dest

        if dd.owner_changed:
            stats.ownership_changes += 1
            console(
                f"  🔄 {record.id}\t{record.path}\t=>\t{destination} - owner changed from "
                f"{self.resolver.user_dir(record.user_id)} to "
                f"{self.resolver.user_dir(dd.new_owner)}"
            )
        else:
            console(f"  {record.id}\t{record.path}\t=>\t{destination}")

        source = find_source_file(self.source_dir, record.path)
        if source is None:
            console(
                f"  ❌ {self.source_dir / record.path} -> file does not exist "
                f"on the Monument disk, skipping"
            )
            stats.files_missing += 1
            stats.records_skipped += 1
            return False

        original_name = sanitize_file_name(record.filename)
        if original_name != record.filename:
            console(f"  📝 Sanitized file name {record.filename!r} -> {original_name}")
        name = unique_name(destination, record.filename, record.checksum, dry_run)
        if name != original_name:
            stats.files_renamed += 1
            warn(f"{destination / original_name} already exists, renamed to {name}")
        dest_path = destination / name

        if not dry_run:
            try:
                stats.bytes_copied += copy_content(source, dest_path)
            except OSError as e:
                console(f"  ❌ Error copying {source} to {dest_path}: {e}")
                stats.records_skipped += 1
                return False

        stats.files_exported += 1
        stats.per_album[dd.category] += 1
        timestamp = get_best_timestamp(source, record.taken)

        tags = []
        if self.options.export_tags or self.options.tags_as_folders:
            tags = self._get_tags(record)

        if self.options.rewrite_metadata:
            self._rewrite_primary(record, source, dest_path, tags)

        if not dry_run:
            set_file_timestamp(dest_path, timestamp)

        if self.options.tags_as_folders and tags:
            self.tag_exporter.export(
                source, self.resolver.user_dir(dd.new_owner), record, tags, timestamp
            )

        if self.options.save_edits:
            self._export_edited(record, destination)

        return True

    def _get_tags(self, record: ContentRecord) -> List[str]:
        try:
            return get_content_tags(self.conn, record.id)
        except sqlite3.Error as e:
            warn(f"Could not read tags for content {record.id}: {e}")
            return []

    def _rewrite_primary(
        self, record: ContentRecord, source: Path, dest_path: Path, tags: List[str]
    ) -> None:
        options = self.options
        has_gps = options.export_gps and record.has_gps

        try:
            result = self.rewriter.rewrite(
                dest_path,
                caption=record.caption if options.save_comments else None,
                latitude=record.latitude if has_gps else None,
                longitude=record.longitude if has_gps else None,
                tags=tags if options.export_tags else None,
                source=source,
                dry_run=options.dry_run,
            )
        except MetadataError as e:
            warn(f"Could not write metadata to {dest_path.name}: {e}")
            self.stats.metadata_failures += 1
            return

        self.stats.record_rewrite(result)

    def _export_edited(self, record: ContentRecord, destination: Path) -> None:
        """Export the active edited variant next to the primary file."""
        options = self.options

        try:
            edited = get_edited_content(self.conn, record.id)
        except sqlite3.Error as e:
            warn(f"Could not read edited version of content {record.id}: {e}")
            self.stats.edited_failures += 1
            return

        if edited is None:
            return

        source = find_source_file(self.source_dir, edited.path)
        if source is None:
            warn(f"Edited version {edited.path} of content {record.id} does not exist")
            self.stats.edited_failures += 1
            return

        base, ext = split_name(sanitize_file_name(record.filename))
        edited_ext = split_name(edited.filename)[1]
        edited_name = f"{base}{EDITED_SUFFIX}{edited_ext or ext}"
        dest_path = destination / unique_name(
            destination, edited_name, edited.checksum, options.dry_run
        )

        has_gps = options.export_gps and record.has_gps
        try:
            if not options.dry_run:
                copy_content(source, dest_path)
            if options.rewrite_metadata:
                self.rewriter.rewrite_edited(
                    dest_path,
                    caption=record.caption if options.save_comments else None,
                    latitude=record.latitude if has_gps else None,
                    longitude=record.longitude if has_gps else None,
                    source=source,
                    dry_run=options.dry_run,
                )
        except (OSError, MetadataError) as e:
            warn(f"Edited version export failed for content {record.id}: {e}")
            self.stats.edited_failures += 1
            return

        if not options.dry_run:
            timestamp = parse_taken_timestamp(edited.stored_at)
            set_file_timestamp(dest_path, timestamp or get_best_timestamp(source))

        console(f"     ✏️  edited version => {dest_path}")
        self.stats.edited_exported += 1
