"""Application use cases for the ingestion pipeline."""

from .classify import FLOORPLAN_KEYWORDS, HERO_KEYWORDS, classify_filename
from .matching import match_property
from .reconcile import ReconcileGalleryUseCase
from .upload_group import UploadGroupUseCase, chunked

__all__ = [
    "FLOORPLAN_KEYWORDS",
    "HERO_KEYWORDS",
    "classify_filename",
    "match_property",
    "ReconcileGalleryUseCase",
    "UploadGroupUseCase",
    "chunked",
]
