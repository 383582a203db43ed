# SPDX-License-Identifier: GPL-3.0-or-later
"""
Record types read from the Monument database.

Copyright (C) 2024 monumentexport Contributors
Licensed under GPL-3.0-or-later
"""

import sqlite3
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ContentRecord:
    """One media item (photo or video) from the content table."""

    id: int
    user_id: int
    path: str
    filename: str
    checksum: Optional[str] = None
    caption: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    taken: Optional[str] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "ContentRecord":
        return cls(
            id=row["id"],
            user_id=row["user_id"] or 0,
            path=row["path"] or "",
            filename=row["filename"] or "",
            checksum=row["checksum"],
            caption=row["caption"],
            latitude=row["geo_lat"],
            longitude=row["geo_lon"],
            taken=row["taken"],
        )

    @property
    def has_gps(self) -> bool:
        """True when both coordinates are set and not the 0,0 placeholder."""
        if self.latitude is None or self.longitude is None:
            return False
        return not (self.latitude == 0.0 and self.longitude == 0.0)


@dataclass(frozen=True)
class AlbumMembership:
    album_id: int
    folder_id: int
    album_name: str
    album_owner_id: int


@dataclass(frozen=True)
class FolderNode:
    id: int
    name: str
    parent_id: Optional[int]
    user_id: int


@dataclass(frozen=True)
class EditedContent:
    """Active edited variant of a content item."""

    content_id: int
    path: str
    filename: str
    checksum: Optional[str] = None
    stored_at: Optional[str] = None


@dataclass
class DestinationDescription:
    """Where a content item goes, relative to the export root."""

    dest: str = ""
    category: str = ""
    owner_changed: bool = False
    new_owner: int = 0
