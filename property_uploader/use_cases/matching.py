"""Folder name -> property matching."""
from typing import Iterable, Optional

from ..models import Property


def _normalize(value: str) -> str:
    return value.strip().lower()


def _is_match(folder: str, title: str) -> bool:
    if not folder or not title:
        return False
    return folder == title or folder in title or title in folder


def match_property(folder_name: str, properties: Iterable[Property]) -> Optional[Property]:
    """
    Find the property a dropped folder belongs to.

    Case-insensitive and whitespace-trimmed: exact title, title containing
    the folder name, or folder name containing the title. Longest titles are
    tried first so "Oak House Annex" wins over "Oak House".
    """
    folder = _normalize(folder_name)
    candidates = sorted(properties, key=lambda p: len(p.title), reverse=True)
    for prop in candidates:
        if _is_match(folder, _normalize(prop.title)):
            return prop
    return None
