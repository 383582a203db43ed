# SPDX-License-Identifier: GPL-3.0-or-later
"""
Run statistics for monumentexport.

Copyright (C) 2024 monumentexport Contributors
Licensed under GPL-3.0-or-later
"""

from collections import Counter

from .exif import RewriteResult
from .utils import format_size


class RunStatistics:
    """Counters accumulated over one export run."""

    def __init__(self):
        self.records_seen = 0
        self.files_exported = 0
        self.files_renamed = 0
        self.files_missing = 0
        self.records_skipped = 0
        self.bytes_copied = 0
        self.gps_written = 0
        self.captions_written = 0
        self.tags_written = 0
        self.truncations = 0
        self.metadata_failures = 0
        self.ownership_changes = 0
        self.tag_copies = 0
        self.tag_failures = 0
        self.edited_exported = 0
        self.edited_failures = 0
        self.per_album = Counter()
        self.per_tag = Counter()

    def record_rewrite(self, result: RewriteResult) -> None:
        """Count what a metadata rewrite actually wrote."""
        if result.gps_written:
            self.gps_written += 1
        if result.caption_written:
            self.captions_written += 1
        if result.tags_written:
            self.tags_written += 1
        if result.truncated:
            self.truncations += 1
        if result.status == "exhausted":
            self.metadata_failures += 1

    def as_dict(self) -> dict:
        return {
            "records_seen": self.records_seen,
            "files_exported": self.files_exported,
            "files_renamed": self.files_renamed,
            "files_missing": self.files_missing,
            "records_skipped": self.records_skipped,
            "bytes_copied": self.bytes_copied,
            "gps_written": self.gps_written,
            "captions_written": self.captions_written,
            "tags_written": self.tags_written,
            "truncations": self.truncations,
            "metadata_failures": self.metadata_failures,
            "ownership_changes": self.ownership_changes,
            "tag_copies": self.tag_copies,
            "tag_failures": self.tag_failures,
            "edited_exported": self.edited_exported,
            "edited_failures": self.edited_failures,
            "per_album": dict(self.per_album),
            "per_tag": dict(self.per_tag),
        }

    def print_summary(self, dry_run: bool = False, top: int = 10) -> None:
        """Print the end-of-run report."""
        print(f"\n📊 EXPORT SUMMARY{' (DRY RUN)' if dry_run else ''}:")
        print(f"   Records processed: {self.records_seen}")
        print(f"   Files exported: {self.files_exported}")
        if not dry_run:
            print(f"   Data copied: {format_size(self.bytes_copied)}")
        print(f"   Files renamed (name collision): {self.files_renamed}")
        print(f"   Files missing on source disk: {self.files_missing}")
        print(f"   Records skipped: {self.records_skipped}")
        print(f"   Ownership changes: {self.ownership_changes}")
        print(f"   GPS written: {self.gps_written}")
        print(f"   Captions written: {self.captions_written}")
        print(f"   Tag lines written: {self.tags_written}")
        print(f"   Truncated metadata: {self.truncations}")
        print(f"   Metadata failures: {self.metadata_failures}")
        print(f"   Tag folder copies: {self.tag_copies} ({self.tag_failures} failed)")
        print(
            f"   Edited versions: {self.edited_exported} ({self.edited_failures} failed)"
        )

        if self.per_album:
            print(f"\n   Top albums:")
            for album, count in self.per_album.most_common(top):
                print(f"     {album}: {count}")

        if self.per_tag:
            print(f"\n   Top tags:")
            for tag, count in self.per_tag.most_common(top):
                print(f"     {tag}: {count}")
