"""Filename-based image classification."""
from ..models import FileType

HERO_KEYWORDS = ("hero", "main", "front", "exterior")
FLOORPLAN_KEYWORDS = ("floorplan", "plan", "layout", "dimensions")


def classify_filename(filename: str) -> FileType:
    """
    Guess where an image belongs from its name.

    Hero keywords are checked before floorplan keywords, anything else is
    gallery.
    """
    lower_name = filename.lower()
    if any(keyword in lower_name for keyword in HERO_KEYWORDS):
        return FileType.HERO
    if any(keyword in lower_name for keyword in FLOORPLAN_KEYWORDS):
        return FileType.FLOORPLAN
    return FileType.GALLERY
