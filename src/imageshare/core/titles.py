"""Software title detection from image metadata."""

import logging
import shutil
import subprocess
import xml.etree.ElementTree as ET
from functools import lru_cache
from pathlib import Path

from PIL import Image as PILImage
from PIL import UnidentifiedImageError
from PIL.ExifTags import TAGS

from imageshare.core.config import TITLE_DATABASE_PATH
from imageshare.core.constants import (
    DEFAULT_IMG_TITLE,
    EXIF_SCANNED_EXTENSIONS,
    EXIFTOOL_TIMEOUT,
    NINTENDO_3DS_MODEL,
)
from imageshare.core.models import SoftwareRelease

logger = logging.getLogger(__name__)


class TitleDatabase:
    """Read-only table of software releases keyed by title ID."""

    def __init__(self, releases: list[SoftwareRelease]) -> None:
        self.releases = releases

    @classmethod
    def from_xml(cls, path: Path) -> "TitleDatabase":
        """Load every <release> entry of a releases XML file."""
        root = ET.parse(path).getroot()
        releases = [
            SoftwareRelease(
                name=(release.findtext("name") or "").strip(),
                titleid=(release.findtext("titleid") or "").strip(),
            )
            for release in root.iter("release")
        ]
        logger.info("Loaded %s releases from %s", len(releases), path)
        return cls(releases)

    def __len__(self) -> int:
        return len(self.releases)

    def lookup(self, partial_id: str) -> str | None:
        """Return the first release name whose title ID contains partial_id.

        Screenshots carry a shortened ID, e.g. ``0863`` for
        ``0004000000086300``, and the casing of hex letters can differ
        between the image and the database.
        """
        game_id = partial_id.strip().lower()
        if not game_id:
            return None
        for release in self.releases:
            if game_id in release.titleid.lower():
                return release.name
        return None


def read_exif_tags(image_path: Path) -> dict[str, object]:
    """Read EXIF tags of an image keyed by tag name."""
    with PILImage.open(image_path) as img:
        exif = img.getexif()
    tags = {}
    for tag_id, value in exif.items():
        if isinstance(value, bytes):
            value = value.decode(errors="ignore")
        if isinstance(value, str):
            value = value.strip("\x00").strip()
        tags[TAGS.get(tag_id, tag_id)] = value
    return tags


def get_software_title(image_path: Path, database: TitleDatabase) -> str:
    """Detect the software title an image was captured from."""
    if image_path.suffix.lower() not in EXIF_SCANNED_EXTENSIONS:
        return DEFAULT_IMG_TITLE

    try:
        tags = read_exif_tags(image_path)
    except (
        OSError,
        UnidentifiedImageError,
        SyntaxError,
        PILImage.DecompressionBombError,
    ) as err:
        logger.warning("Could not read metadata from %s: %s", image_path, err)
        return DEFAULT_IMG_TITLE

    software = tags.get("Software")
    if tags.get("Model") == NINTENDO_3DS_MODEL and software:
        match = database.lookup(str(software))
        if match:
            return match
    return DEFAULT_IMG_TITLE


def tag_image_description(image_path: Path, title: str) -> bool:
    """Write the title into the image description with exiftool.

    Returns False when exiftool is not installed.
    """
    exiftool = shutil.which("exiftool")
    if exiftool is None:
        logger.debug("exiftool not found, not tagging %s", image_path)
        return False

    try:
        result = subprocess.run(  # noqa: S603
            [
                exiftool,
                "-overwrite_original",
                f"-Caption-Abstract={title}",
                f"-ImageDescription={title}",
                str(image_path),
            ],
            capture_output=True,
            text=True,
            timeout=EXIFTOOL_TIMEOUT,
            check=False,
        )
    except (subprocess.TimeoutExpired, OSError) as err:
        logger.warning("exiftool could not tag %s: %s", image_path, err)
        return False
    if result.returncode != 0:
        logger.warning("exiftool failed on %s: %s", image_path, result.stderr.strip())
        return False
    return True


@lru_cache
def get_title_database() -> TitleDatabase:
    """Dependency to get the bundled Nintendo 3DS releases table."""
    return TitleDatabase.from_xml(TITLE_DATABASE_PATH)
