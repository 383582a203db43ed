# SPDX-License-Identifier: GPL-3.0-or-later
"""
Destination resolution for monumentexport.

Works out where a content item lands in the export tree. Albums can live
inside nested folders, and folders can be shared between users, so the
export is anchored under the owner of the root folder of the chain rather
than the owner recorded on the content itself.

Copyright (C) 2024 monumentexport Contributors
Licensed under GPL-3.0-or-later
"""

import sqlite3
from datetime import datetime
from typing import Dict, List, Optional

from .database import UNKNOWN_USER_NAME, get_album_membership
from .errors import HierarchyError
from .models import AlbumMembership, DestinationDescription, FolderNode
from .sanitize import sanitize_container_name

NO_ALBUM_DIR = "PHOTOS_WITHOUT_ALBUM"
TAKEN_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_DATE_PARTS = ("1970", "01", "01")
FLAT_SEPARATOR = " - "


def get_date_parts(taken: Optional[str]) -> tuple:
    """
    Split a captured-at value into (year, month, day) directory names.

    Falls back to 1970/01/01 when the value is missing or not in
    ``yyyy-MM-dd HH:mm:ss`` form.
    """
    if not taken:
        return DEFAULT_DATE_PARTS

    try:
        date_obj = datetime.strptime(taken.strip(), TAKEN_FORMAT)
    except (TypeError, ValueError):
        return DEFAULT_DATE_PARTS

    return (f"{date_obj.year:04d}", f"{date_obj.month:02d}", f"{date_obj.day:02d}")


class HierarchyResolver:
    """Resolve content items to destination sub-paths and effective owners."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        user_names: Dict[int, str],
        folders: Dict[int, FolderNode],
        flatten: bool = False,
    ):
        """
        Args:
            conn: Read-only connection used for album membership lookups
            user_names: User id -> directory name map
            folders: In-memory arena of album folders keyed by id
            flatten: Collapse folder/album paths into one directory level
        """
        self.conn = conn
        self.user_names = user_names
        self.folders = folders
        self.flatten = flatten

    def user_dir(self, user_id: int) -> str:
        """Directory name for a user, ``unknown_user`` for unknown ids."""
        return sanitize_container_name(
            self.user_names.get(user_id, UNKNOWN_USER_NAME)
        )

    def folder_chain(self, folder_id: int) -> List[FolderNode]:
        """
        Walk from a folder up to its root, returned root first.

        A parent id missing from the arena ends the chain; the last folder
        found is then treated as the root.

        Raises:
            HierarchyError: if the parent pointers form a cycle
        """
        chain = []
        seen = set()
        current = self.folders.get(folder_id)

        while current is not None:
            if current.id in seen:
                raise HierarchyError(
                    f"Folder hierarchy cycle detected at folder {current.id}"
                )
            seen.add(current.id)
            chain.append(current)

            if not current.parent_id:
                break
            current = self.folders.get(current.parent_id)

        chain.reverse()
        return chain

    def resolve(
        self, content_id: int, content_owner_id: int, taken: Optional[str] = None
    ) -> DestinationDescription:
        """
        Compute the destination for one content item.

        Args:
            content_id: Content id to look up
            content_owner_id: Owner recorded on the content row
            taken: Captured-at value, used for content without an album

        Raises:
            sqlite3.Error: if the membership query fails
            HierarchyError: if the folder hierarchy is corrupt
        """
        membership = get_album_membership(self.conn, content_id)

        if membership is None:
            return self._resolve_without_album(content_owner_id, taken)

        chain = self.folder_chain(membership.folder_id) if membership.folder_id else []
        album_name = sanitize_container_name(membership.album_name)

        if self.flatten:
            return self._resolve_flat(membership, chain, album_name, content_owner_id)

        if not chain:
            # Album not in a folder (or folder no longer exists)
            owner_id = membership.album_owner_id
            return DestinationDescription(
                dest=f"{self.user_dir(owner_id)}/{album_name}",
                category=album_name,
                owner_changed=owner_id != content_owner_id,
                new_owner=owner_id,
            )

        root_owner_id = chain[0].user_id
        sub_path = self.build_folder_path(chain, "/") + "/" + album_name
        return DestinationDescription(
            dest=f"{self.user_dir(root_owner_id)}/{sub_path}",
            category=sub_path,
            owner_changed=root_owner_id != content_owner_id,
            new_owner=root_owner_id,
        )

    def build_folder_path(self, chain: List[FolderNode], separator: str) -> str:
        """Join sanitized folder names from root to leaf."""
        return separator.join(sanitize_container_name(node.name) for node in chain)

    def _resolve_without_album(
        self, content_owner_id: int, taken: Optional[str]
    ) -> DestinationDescription:
        dest = f"{self.user_dir(content_owner_id)}/{NO_ALBUM_DIR}"
        if not self.flatten:
            dest += "/" + "/".join(get_date_parts(taken))

        return DestinationDescription(
            dest=dest,
            category=NO_ALBUM_DIR,
            owner_changed=False,
            new_owner=content_owner_id,
        )

    def _resolve_flat(
        self,
        membership: AlbumMembership,
        chain: List[FolderNode],
        album_name: str,
        content_owner_id: int,
    ) -> DestinationDescription:
        if chain:
            owner_id = chain[0].user_id
            flat_name = (
                self.build_folder_path(chain, FLAT_SEPARATOR)
                + FLAT_SEPARATOR
                + album_name
            )
        else:
            owner_id = membership.album_owner_id
            flat_name = album_name

        return DestinationDescription(
            dest=f"{self.user_dir(owner_id)}/{flat_name}",
            category=flat_name,
            owner_changed=membership.album_owner_id != content_owner_id,
            new_owner=owner_id,
        )
