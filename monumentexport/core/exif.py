# SPDX-License-Identifier: GPL-3.0-or-later
"""
EXIF metadata rewriting for monumentexport.

Merges captions, GPS coordinates and tags from the Monument database into
the EXIF block of exported JPEG files. Existing metadata is kept: pixel data
is never re-encoded (piexif splices the new APP1 segment in place) and GPS
already present in a photo is never overwritten.

Captions and tags share the free-text ImageDescription field. The EXIF
segment has a hard size ceiling, so the text is written through a
truncation ladder: each rung applies stricter limits to the caption and
the keywords line until the encoded segment fits.

Copyright (C) 2024 monumentexport Contributors
Licensed under GPL-3.0-or-later
"""

import os
import re
import struct
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import piexif
from PIL import Image

from .errors import MetadataError, SegmentTooLargeError
from .utils import debug, warn

# APP1 payload ceiling, kept below the 64 KiB JPEG segment limit
EXIF_SEGMENT_LIMIT = 60 * 1024

CAPTION_MAX_LENGTH = 500
TAG_LIST_MAX_LENGTH = 1000

# (caption_limit, tag_limit) pairs, tried in order; 0 drops the section
TRUNCATION_LADDER = [
    (500, 300),
    (300, 200),
    (150, 100),
    (100, 50),
    (50, 0),
    (0, 0),
]

SUPPORTED_EXTENSIONS = {".jpg", ".jpeg"}

KEYWORDS_PREFIX = "Keywords: "
ELLIPSIS = "..."

EDITED_MAKE = "Monument"
EDITED_MODEL = "Monument Photo Editor"
EDITED_MARKER = "(edited)"

TAG_IMAGE_DESCRIPTION = 0x010E
TAG_GPS_INFO = 0x8825
GPS_LATITUDE = 2
GPS_LONGITUDE = 4

CAPTION_REPLACEMENTS = {
    "–": "-",  # en dash
    "—": "-",  # em dash
    "…": "...",  # ellipsis
    "‘": "'",
    "’": "'",
    "“": '"',
    "”": '"',
    " ": " ",  # no-break space
    "€": "[EUR]",
    "£": "[GBP]",
    "¥": "[JPY]",
    "™": "[TM]",
    "©": "[C]",
    "®": "[R]",
}

# toString() of a Java object, e.g. "[B@1b6d3586" or "java.lang.String@6d06d69c"
_OBJECT_REFERENCE = re.compile(
    r"^(?:\[+[A-Z][\w.$;]*|[A-Za-z_$][\w$]*(?:\.[\w$]+)+)@[0-9a-fA-F]{5,8}$"
)


@dataclass
class RewriteResult:
    """Outcome of one metadata rewrite."""

    status: str = "unchanged"  # written, exhausted, skipped, unchanged
    gps_written: bool = False
    caption_written: bool = False
    tags_written: bool = False
    attempts: int = 0
    truncated: bool = False


def is_supported_image(path: Path) -> bool:
    """Only JPEG stills carry an EXIF block we can rewrite."""
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


def to_single_byte(text: str) -> str:
    """Map typographic characters to ASCII and anything else outside Latin-1 to '?'."""
    for char, replacement in CAPTION_REPLACEMENTS.items():
        text = text.replace(char, replacement)
    return "".join(c if ord(c) <= 0xFF else "?" for c in text)


def truncate_text(text: str, limit: int) -> str:
    """Cut text to at most limit characters, marking the cut with an ellipsis."""
    if limit <= 0:
        return ""
    if len(text) <= limit:
        return text
    if limit <= len(ELLIPSIS):
        return text[:limit]
    return text[: limit - len(ELLIPSIS)] + ELLIPSIS


def sanitize_caption(caption: Optional[str]) -> str:
    """Make a caption safe for the EXIF ASCII field and cap its length."""
    if not caption:
        return ""
    return truncate_text(to_single_byte(caption.strip()), CAPTION_MAX_LENGTH)


def is_corrupted_description(text: Optional[str]) -> bool:
    """Detect descriptions that are a serialized object reference, not text."""
    if not text:
        return False
    return bool(_OBJECT_REFERENCE.match(text.strip()))


def build_tag_list(tags: Iterable[str]) -> List[str]:
    """
    Sort and de-duplicate tags, keeping the joined list within the length cap.

    Tags that would push the list over the cap are dropped whole; a tag's
    text is never cut at this stage.
    """
    unique = sorted({to_single_byte(tag.strip()) for tag in tags if tag and tag.strip()})

    kept = []
    length = 0
    for tag in unique:
        added = len(tag) + (2 if kept else 0)  # ", " separator
        if length + added > TAG_LIST_MAX_LENGTH:
            continue
        kept.append(tag)
        length += added

    return kept


def build_keywords_line(tags: Iterable[str]) -> str:
    tag_list = build_tag_list(tags)
    if not tag_list:
        return ""
    return KEYWORDS_PREFIX + ", ".join(tag_list)


def strip_keywords_lines(text: Optional[str]) -> str:
    """Remove keyword lines written by a previous export from a description."""
    if not text:
        return ""
    lines = [line for line in text.splitlines() if not line.startswith(KEYWORDS_PREFIX)]
    return "\n".join(lines).strip()


def description_sections(text: Optional[str]) -> List[str]:
    """Split a description into its blank-line separated sections."""
    if not text:
        return []
    return [section.strip() for section in text.split("\n\n") if section.strip()]


def merge_description(*sections: str) -> str:
    """Join the non-empty sections with blank lines."""
    return "\n\n".join(section for section in sections if section)


def decimal_to_dms(value: float) -> Tuple[Tuple[int, int], ...]:
    """
    Convert decimal degrees to an EXIF degrees/minutes/seconds rational triple.

    Degrees and minutes are whole numbers; seconds keep three decimals.
    """
    value = abs(value)
    degrees = int(value)
    minutes_float = (value - degrees) * 60
    minutes = int(minutes_float)
    seconds = (minutes_float - minutes) * 60
    return ((degrees, 1), (minutes, 1), (int(seconds * 1000), 1000))


def build_gps_ifd(latitude: float, longitude: float) -> Dict[int, Any]:
    return {
        piexif.GPSIFD.GPSVersionID: (2, 2, 0, 0),
        piexif.GPSIFD.GPSLatitudeRef: "N" if latitude >= 0 else "S",
        piexif.GPSIFD.GPSLatitude: decimal_to_dms(latitude),
        piexif.GPSIFD.GPSLongitudeRef: "E" if longitude >= 0 else "W",
        piexif.GPSIFD.GPSLongitude: decimal_to_dms(longitude),
    }


def read_image_metadata(file_path: Path) -> Dict[str, Any]:
    """
    Read the fields the rewriter cares about from an image.

    Returns:
        Dictionary with ``description`` (str or None) and ``has_gps``

    Raises:
        MetadataError: if the image cannot be opened
    """
    try:
        with Image.open(file_path) as img:
            exifdata = img.getexif()
            description = exifdata.get(TAG_IMAGE_DESCRIPTION)
            gps_info = exifdata.get_ifd(TAG_GPS_INFO)
    except (OSError, SyntaxError, ValueError) as e:
        raise MetadataError(f"Could not read metadata from {file_path}: {e}") from e

    if isinstance(description, bytes):
        description = description.decode("latin-1", "replace")
    if description is not None:
        description = description.rstrip("\x00")

    return {
        "description": description or None,
        "has_gps": bool(
            gps_info and GPS_LATITUDE in gps_info and GPS_LONGITUDE in gps_info
        ),
    }


class MetadataRewriter:
    """Write caption, GPS and tag metadata into exported JPEG files."""

    def __init__(self, segment_limit: int = EXIF_SEGMENT_LIMIT):
        self.segment_limit = segment_limit

    def rewrite(
        self,
        path: Path,
        caption: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        tags: Optional[Iterable[str]] = None,
        source: Optional[Path] = None,
        dry_run: bool = False,
    ) -> RewriteResult:
        """
        Merge caption, GPS and a keywords line into an exported file.

        Args:
            path: Exported file to patch in place
            caption: Caption text, or None to leave the caption out
            latitude, longitude: Coordinates, or None to skip GPS
            tags: Tag names for the keywords line, or None to skip tags
            source: Original file, read instead of path in dry-run mode
            dry_run: Encode and size-check every attempt but write nothing

        Raises:
            MetadataError: on any failure other than an oversized segment
        """
        keywords = build_keywords_line(tags) if tags else ""
        return self._rewrite(
            Path(path), caption, latitude, longitude, keywords, None, source, dry_run
        )

    def rewrite_edited(
        self,
        path: Path,
        caption: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        source: Optional[Path] = None,
        dry_run: bool = False,
    ) -> RewriteResult:
        """Patch an exported edited variant: stamps the editor make/model, no tags."""
        if caption:
            caption = f"{caption.strip()} {EDITED_MARKER}"
        return self._rewrite(
            Path(path),
            caption,
            latitude,
            longitude,
            "",
            (EDITED_MAKE, EDITED_MODEL),
            source,
            dry_run,
        )

    def _rewrite(
        self,
        path: Path,
        caption: Optional[str],
        latitude: Optional[float],
        longitude: Optional[float],
        keywords: str,
        make_model: Optional[Tuple[str, str]],
        source: Optional[Path],
        dry_run: bool,
    ) -> RewriteResult:
        result = RewriteResult()
        if not is_supported_image(path):
            result.status = "skipped"
            return result

        read_from = Path(source) if dry_run and source else path
        metadata = read_image_metadata(read_from)
        exif_dict = self._load_exif(read_from)

        # Dedicated fields first; they stay even if no text fits later
        fixed_changed = False
        if latitude is not None and longitude is not None and not metadata["has_gps"]:
            exif_dict["GPS"].update(build_gps_ifd(latitude, longitude))
            result.gps_written = True
            fixed_changed = True
        if make_model:
            exif_dict["0th"][piexif.ImageIFD.Make] = make_model[0]
            exif_dict["0th"][piexif.ImageIFD.Model] = make_model[1]
            fixed_changed = True

        if fixed_changed:
            self._apply(path, exif_dict, dry_run)
            result.status = "written"

        existing = metadata["description"]
        if is_corrupted_description(existing):
            debug(f"Discarding corrupted description in {read_from.name}: {existing!r}")
            existing = None
        existing = to_single_byte(strip_keywords_lines(existing))

        full_caption = to_single_byte(caption.strip()) if caption else ""
        clean_caption = sanitize_caption(caption)
        if clean_caption and clean_caption in description_sections(existing):
            # Caption already carried over from a previous export
            clean_caption = full_caption = ""

        if not clean_caption and not keywords:
            return result

        for attempt, (caption_limit, tag_limit) in enumerate(TRUNCATION_LADDER, 1):
            caption_part = truncate_text(clean_caption, caption_limit)
            keywords_part = truncate_text(keywords, tag_limit)
            text = merge_description(existing, caption_part, keywords_part)

            if text:
                exif_dict["0th"][TAG_IMAGE_DESCRIPTION] = text.encode(
                    "latin-1", "replace"
                )
            else:
                exif_dict["0th"].pop(TAG_IMAGE_DESCRIPTION, None)

            try:
                self._apply(path, exif_dict, dry_run)
            except SegmentTooLargeError as e:
                debug(f"{path.name}: attempt {attempt} too large ({e})")
                continue

            result.attempts = attempt
            if not caption_part and not keywords_part:
                # Only the carried-over text fit
                break

            result.status = "written"
            result.caption_written = bool(caption_part)
            result.tags_written = bool(keywords_part)
            result.truncated = (
                attempt > 1
                or caption_part != full_caption
                or keywords_part != keywords
            )
            return result

        warn(
            f"No caption/tag metadata could be written to {path.name} "
            f"within {self.segment_limit} bytes"
        )
        result.status = "exhausted"
        result.attempts = result.attempts or len(TRUNCATION_LADDER)
        result.truncated = True
        return result

    def _load_exif(self, path: Path) -> Dict[str, Any]:
        try:
            return piexif.load(str(path))
        except Exception as e:
            raise MetadataError(f"Could not parse EXIF in {path}: {e}") from e

    def encode(self, exif_dict: Dict[str, Any]) -> bytes:
        """
        Serialize an EXIF dictionary and enforce the segment ceiling.

        Raises:
            SegmentTooLargeError: if the encoded block exceeds segment_limit
            MetadataError: if the dictionary cannot be encoded
        """
        try:
            exif_bytes = piexif.dump(exif_dict)
        except (ValueError, TypeError, struct.error) as e:
            raise MetadataError(f"Could not encode EXIF: {e}") from e

        if len(exif_bytes) > self.segment_limit:
            raise SegmentTooLargeError(len(exif_bytes), self.segment_limit)
        return exif_bytes

    def _apply(self, path: Path, exif_dict: Dict[str, Any], dry_run: bool) -> None:
        exif_bytes = self.encode(exif_dict)
        if dry_run:
            return
        self._write(path, exif_bytes)

    def _write(self, path: Path, exif_bytes: bytes) -> None:
        """Splice the EXIF block into a temporary copy and swap it in."""
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        os.close(fd)

        try:
            piexif.insert(exif_bytes, str(path), tmp_name)
            os.replace(tmp_name, path)
        except struct.error as e:
            raise SegmentTooLargeError(len(exif_bytes), self.segment_limit) from e
        except (ValueError, OSError, piexif.InvalidImageDataError) as e:
            raise MetadataError(f"Could not write EXIF to {path}: {e}") from e
        finally:
            if os.path.exists(tmp_name):
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass  # Best effort
