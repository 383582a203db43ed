"""Pytest configuration and fixtures for monumentexport tests."""

import sqlite3
import tempfile
from pathlib import Path
from typing import Optional

import piexif
import pytest
from PIL import Image

from monumentexport.core.database import connect_db_readonly


def make_jpeg(
    path: Path,
    description: Optional[str] = None,
    gps: Optional[dict] = None,
    color: str = "red",
) -> Path:
    """Write a small real JPEG, optionally with an existing EXIF block."""
    path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.new("RGB", (16, 16), color=color)

    if description is None and gps is None:
        img.save(path, "JPEG")
        return path

    exif_dict = {"0th": {}, "Exif": {}, "GPS": {}, "1st": {}, "thumbnail": None}
    if description is not None:
        exif_dict["0th"][piexif.ImageIFD.ImageDescription] = description.encode(
            "latin-1"
        )
    if gps is not None:
        exif_dict["GPS"] = gps
    img.save(path, "JPEG", exif=piexif.dump(exif_dict))
    return path


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_monument_structure(temp_dir):
    """Create a mock Monument disk layout."""
    source = temp_dir / "monument_root"
    userdata = source / "monument" / ".userdata"
    userdata.mkdir(parents=True)

    return {
        "root": source,
        "userdata": userdata,
        "db": userdata / "m.sqlite3",
        "dest": temp_dir / "export",
    }


SCHEMA = """
CREATE TABLE user (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active'
);
CREATE TABLE content (
    id INTEGER PRIMARY KEY,
    user_id INTEGER,
    type INTEGER NOT NULL DEFAULT 0,
    path TEXT,
    filename TEXT,
    checksum TEXT,
    caption TEXT,
    geo_lat REAL,
    geo_lon REAL,
    taken TEXT,
    deleted_at TEXT
);
CREATE TABLE album (
    id INTEGER PRIMARY KEY,
    name TEXT,
    user_id INTEGER
);
CREATE TABLE albumcontent (
    album_id INTEGER NOT NULL,
    content_id INTEGER NOT NULL
);
CREATE TABLE albumfolder (
    id INTEGER PRIMARY KEY,
    name TEXT,
    parent_id INTEGER,
    user_id INTEGER,
    original_folder_id INTEGER
);
CREATE TABLE albumfolderalbum (
    album_id INTEGER NOT NULL,
    folder_id INTEGER NOT NULL
);
CREATE TABLE tag (
    id INTEGER PRIMARY KEY,
    name TEXT,
    builtin INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE contenttag (
    content_id INTEGER NOT NULL,
    tag_id INTEGER NOT NULL
);
CREATE TABLE editedcontent (
    id INTEGER PRIMARY KEY,
    content_id INTEGER NOT NULL,
    path TEXT,
    filename TEXT,
    checksum TEXT,
    stored_at TEXT,
    status INTEGER NOT NULL DEFAULT 1
);
"""

USERS = [
    (1, "alice", "active"),
    (2, "bob", "active"),
    (3, "carol", "deleted"),
]

# id, user_id, path, filename, checksum, caption, lat, lon, taken, deleted_at
CONTENT = [
    (
        42,
        1,
        "userdata/alice/IMG_0042.jpg",
        "IMG_0042.jpg",
        "abc123",
        "Beach – day",
        48.8584,
        2.2945,
        "2019-07-04 12:30:00",
        None,
    ),
    (
        43,
        1,
        "userdata/alice/IMG_0043.jpg",
        "IMG_0043.jpg",
        "bcd234",
        "Eiffel tower",
        None,
        None,
        "2024-05-01 10:00:00",
        None,
    ),
    (44, 2, "userdata/bob/clip.mp4", "clip.mp4", "cde345", None, None, None,
     "2020-02-29 08:00:00", None),
    (45, 1, "userdata/alice/gone.jpg", "gone.jpg", "def456", None, None, None,
     "2021-01-01 00:00:00", "2021-06-01 00:00:00"),
    (46, 1, "userdata/alice/missing.jpg", "missing.jpg", "efa567", None, None,
     None, "2021-01-01 00:00:00", None),
    (47, 1, "userdata/alice/IMG_0047.jpg", "IMG_0047.jpg", "fab678", None,
     None, None, None, None),
    (48, 2, "userdata/bob/IMG_0042.jpg", "IMG_0042.jpg", "bob999", None, None,
     None, "2019-07-05 09:00:00", None),
]

ALBUMS = [
    (10, "Summer Trip", 2),
    (11, "Paris", 1),
    (12, "Birthday.", 1),
]

ALBUM_CONTENT = [
    (10, 42),
    (11, 43),
    (12, 47),
    (10, 48),
]

# Root "Shared" belongs to bob; intermediate folders to alice and carol
FOLDERS = [
    (100, "Shared", None, 2),
    (101, "Europe", 100, 1),
    (102, "France", 101, 3),
    (103, "Home", None, 1),
]

FOLDER_ALBUMS = [
    (11, 102),
    (12, 103),
]

TAGS = [
    (1, "paris", 0),
    (2, "2024", 0),
    (3, "favorite", 1),
]

CONTENT_TAGS = [
    (43, 1),
    (43, 2),
    (43, 3),
]

EDITED = [
    (1, 43, "userdata/alice/.edits/IMG_0043_e.jpg", "IMG_0043_e.jpg", "ed0043",
     "2024-05-02 18:00:00", 1),
    (2, 43, "userdata/alice/.edits/IMG_0043_old.jpg", "IMG_0043_old.jpg",
     "ed0000", "2024-05-01 18:00:00", 0),
]


def create_monument_database(db_path: Path) -> None:
    """Create a Monument database with the standard test data."""
    conn = sqlite3.connect(db_path)
    conn.executescript(SCHEMA)
    conn.executemany("INSERT INTO user VALUES (?, ?, ?)", USERS)
    conn.executemany(
        "INSERT INTO content (id, user_id, path, filename, checksum, caption, "
        "geo_lat, geo_lon, taken, deleted_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        CONTENT,
    )
    conn.executemany("INSERT INTO album VALUES (?, ?, ?)", ALBUMS)
    conn.executemany("INSERT INTO albumcontent VALUES (?, ?)", ALBUM_CONTENT)
    conn.executemany(
        "INSERT INTO albumfolder (id, name, parent_id, user_id) VALUES (?, ?, ?, ?)",
        FOLDERS,
    )
    conn.executemany("INSERT INTO albumfolderalbum VALUES (?, ?)", FOLDER_ALBUMS)
    conn.executemany("INSERT INTO tag VALUES (?, ?, ?)", TAGS)
    conn.executemany("INSERT INTO contenttag VALUES (?, ?)", CONTENT_TAGS)
    conn.executemany("INSERT INTO editedcontent VALUES (?, ?, ?, ?, ?, ?, ?)", EDITED)
    conn.commit()
    conn.close()


@pytest.fixture
def mock_database(mock_monument_structure):
    """Create the Monument SQLite database with test data."""
    db_path = mock_monument_structure["db"]
    create_monument_database(db_path)
    return db_path


@pytest.fixture
def mock_files(mock_monument_structure):
    """Create the media files referenced by the database (except 46)."""
    root = mock_monument_structure["root"]
    files = {
        42: make_jpeg(root / "userdata/alice/IMG_0042.jpg"),
        43: make_jpeg(root / "userdata/alice/IMG_0043.jpg", color="blue"),
        47: make_jpeg(root / "userdata/alice/IMG_0047.jpg", color="green"),
        48: make_jpeg(root / "userdata/bob/IMG_0042.jpg", color="yellow"),
        "edited": make_jpeg(
            root / "userdata/alice/.edits/IMG_0043_e.jpg", color="white"
        ),
    }
    video = root / "userdata/bob/clip.mp4"
    video.write_bytes(b"\x00\x00\x00\x18ftypmp42 fake video")
    files[44] = video
    return files


@pytest.fixture
def db_conn(mock_database):
    """Read-only connection to the test database."""
    conn = connect_db_readonly(mock_database)
    yield conn
    conn.close()


@pytest.fixture
def user_names():
    return {0: "unknown_user", 1: "alice_1", 2: "bob_2", 3: "carol_3_deleted"}
