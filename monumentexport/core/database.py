# SPDX-License-Identifier: GPL-3.0-or-later
"""
Database operations for monumentexport.

Handles locating the Monument database, opening it read-only, and the
queries the exporter runs against it. Nothing in this module writes to
the source database.

Copyright (C) 2024 monumentexport Contributors
Licensed under GPL-3.0-or-later
"""

import os
import shutil
import sqlite3
import tempfile
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from .errors import SourceStoreError
from .models import AlbumMembership, ContentRecord, EditedContent, FolderNode

UNKNOWN_USER_ID = 0
UNKNOWN_USER_NAME = "unknown_user"


def detect_monument_structure(root_path: Path) -> Optional[Path]:
    """
    Auto-detect the Monument database below a source root.

    Returns:
        Path to m.sqlite3, or None if not found
    """
    root_path = Path(root_path)

    candidates = [
        # Standard structure: root/monument/.userdata/
        root_path / "monument" / ".userdata" / "m.sqlite3",
        # Alternative: root is the monument directory itself
        root_path / ".userdata" / "m.sqlite3",
        # Alternative: database copied next to the files
        root_path / "m.sqlite3",
    ]

    for db_path in candidates:
        if db_path.is_file():
            return db_path

    return None


class ReadOnlyConnection:
    """Wrapper for sqlite3.Connection that tracks temporary files for cleanup."""

    def __init__(self, conn: sqlite3.Connection, temp_db_path: str = None):
        self.conn = conn
        self.temp_db_path = temp_db_path

    def __getattr__(self, name):
        return getattr(self.conn, name)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None
        if self.temp_db_path:
            try:
                os.unlink(self.temp_db_path)
            except OSError:
                pass  # Already removed
            self.temp_db_path = None


def connect_db_readonly(db_path: Path) -> ReadOnlyConnection:
    """
    Connect to the SQLite database in read-only mode.

    Raises:
        SourceStoreError: if the database cannot be opened at all
    """
    db_path = Path(db_path)
    if not db_path.exists():
        raise SourceStoreError(f"Database file does not exist: {db_path}")

    try:
        conn = sqlite3.connect(f"file:{db_path}?mode=ro", uri=True)
        conn.row_factory = sqlite3.Row
        # Test if we can actually query the database
        conn.execute("SELECT name FROM sqlite_master WHERE type='table' LIMIT 1")
        return ReadOnlyConnection(conn)
    except sqlite3.Error:
        pass

    # Fallback: copy database to temporary location for read access.
    # This handles mounted filesystems where URI syntax fails.
    try:
        with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as tmp_file:
            shutil.copy2(db_path, tmp_file.name)
        conn = sqlite3.connect(tmp_file.name)
        conn.row_factory = sqlite3.Row
        conn.execute("SELECT name FROM sqlite_master WHERE type='table' LIMIT 1")
        return ReadOnlyConnection(conn, tmp_file.name)
    except (OSError, sqlite3.Error) as e:
        raise SourceStoreError(f"Cannot access database {db_path}: {e}") from e


def load_user_map(conn: sqlite3.Connection) -> Dict[int, str]:
    """
    Build the user id -> export directory name map.

    Names are ``<name>_<id>``, with a ``_deleted`` suffix for removed
    accounts. Id 0 is reserved for content without a known owner.

    Raises:
        SourceStoreError: if the user table cannot be read
    """
    users = {UNKNOWN_USER_ID: UNKNOWN_USER_NAME}

    try:
        rows = conn.execute("SELECT id, name, status FROM user").fetchall()
    except sqlite3.Error as e:
        raise SourceStoreError(f"Could not read users: {e}") from e

    for row in rows:
        name = f"{row['name']}_{row['id']}"
        if row["status"] == "deleted":
            name += "_deleted"
        users[row["id"]] = name

    return users


def load_folder_arena(conn: sqlite3.Connection) -> Dict[int, FolderNode]:
    """Load every album folder into memory, keyed by id."""
    query = "SELECT id, name, parent_id, user_id FROM albumfolder"
    return {
        row["id"]: FolderNode(
            id=row["id"],
            name=row["name"] or "",
            parent_id=row["parent_id"],
            user_id=row["user_id"] or 0,
        )
        for row in conn.execute(query)
    }


def count_content_records(conn: sqlite3.Connection) -> int:
    """Count content records that have not been deleted."""
    row = conn.execute(
        "SELECT COUNT(*) FROM content WHERE deleted_at IS NULL"
    ).fetchone()
    return row[0]


def iter_content_records(conn: sqlite3.Connection) -> Iterator[ContentRecord]:
    """Yield all non-deleted content records in id order."""
    query = """
    SELECT id, user_id, type, path, filename, checksum,
           caption, geo_lat, geo_lon, taken
    FROM content
    WHERE deleted_at IS NULL
    ORDER BY id
    """
    for row in conn.execute(query):
        yield ContentRecord.from_row(row)


def get_album_membership(
    conn: sqlite3.Connection, content_id: int
) -> Optional[AlbumMembership]:
    """Get the album (and its folder, if any) a content item belongs to."""
    query = """
    SELECT ac.album_id, afa.folder_id AS folder_id,
           a.name AS album_name, a.user_id AS album_owner_id
    FROM albumcontent AS ac
    JOIN album AS a ON ac.album_id = a.id
    LEFT JOIN albumfolderalbum AS afa ON ac.album_id = afa.album_id
    WHERE ac.content_id = ?
    ORDER BY ac.album_id
    LIMIT 1
    """
    row = conn.execute(query, (content_id,)).fetchone()
    if row is None:
        return None

    return AlbumMembership(
        album_id=row["album_id"],
        folder_id=row["folder_id"] or 0,
        album_name=row["album_name"] or "",
        album_owner_id=row["album_owner_id"] or 0,
    )


def get_content_tags(conn: sqlite3.Connection, content_id: int) -> List[str]:
    """Get the user-visible tag names for a content item, sorted by name."""
    query = """
    SELECT DISTINCT t.name
    FROM contenttag AS ct
    JOIN tag AS t ON ct.tag_id = t.id
    WHERE ct.content_id = ?
      AND COALESCE(t.builtin, 0) = 0
      AND t.name IS NOT NULL AND t.name != ''
    ORDER BY t.name
    """
    return [row["name"] for row in conn.execute(query, (content_id,))]


def get_edited_content(
    conn: sqlite3.Connection, content_id: int
) -> Optional[EditedContent]:
    """Get the active edited variant of a content item, if any."""
    query = """
    SELECT content_id, path, filename, checksum, stored_at
    FROM editedcontent
    WHERE content_id = ? AND status = 1
    ORDER BY stored_at DESC
    LIMIT 1
    """
    row = conn.execute(query, (content_id,)).fetchone()
    if row is None:
        return None

    return EditedContent(
        content_id=row["content_id"],
        path=row["path"] or "",
        filename=row["filename"] or "",
        checksum=row["checksum"],
        stored_at=row["stored_at"],
    )
