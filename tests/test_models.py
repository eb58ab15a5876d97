"""Tests for property_uploader models."""
from pathlib import Path

import pytest

from property_uploader.models import (
    FileEntry,
    FileType,
    Property,
    PropertyGroup,
    ReconcilePlan,
    Status,
    UploadConfig,
)


def _group(*entries, matched=None):
    return PropertyGroup(display_name="Folder", files=tuple(entries), matched_property=matched)


class TestFileEntry:
    def test_defaults(self):
        entry = FileEntry(path=Path("img1.jpg"))
        assert entry.file_type == FileType.GALLERY
        assert entry.status == Status.PENDING
        assert entry.url is None
        assert entry.succeeded is False

    def test_content_type_and_extension(self):
        entry = FileEntry(path=Path("dir/Photo.JPG"))
        assert entry.content_type == "image/jpeg"
        assert entry.extension == "jpg"
        assert FileEntry(path=Path("plan.png")).content_type == "image/png"

    def test_unknown_content_type(self):
        assert FileEntry(path=Path("blob.unknownext")).content_type == "application/octet-stream"

    def test_completed_and_failed(self):
        entry = FileEntry(path=Path("a.jpg"))
        done = entry.completed("https://cdn/a.jpg")
        assert done.succeeded is True
        assert done.status == Status.COMPLETE
        assert entry.status == Status.PENDING  # original untouched

        failed = entry.failed("boom")
        assert failed.status == Status.ERROR
        assert failed.error == "boom"
        assert failed.succeeded is False

    def test_immutable(self):
        entry = FileEntry(path=Path("a.jpg"))
        with pytest.raises(Exception):
            entry.status = Status.COMPLETE


class TestPropertyGroup:
    def test_property_id(self):
        assert _group().property_id is None
        assert _group(matched=Property(5, "Riverside Gardens")).property_id == 5

    def test_is_uploadable(self):
        matched = _group(matched=Property(1, "A"))
        assert matched.is_uploadable is True
        assert _group().is_uploadable is False
        assert matched.with_status(Status.COMPLETE).is_uploadable is False

    def test_duplicate_singletons(self):
        group = _group(
            FileEntry(Path("hero.jpg"), FileType.HERO),
            FileEntry(Path("front.jpg"), FileType.HERO),
            FileEntry(Path("plan.jpg"), FileType.FLOORPLAN),
            FileEntry(Path("a.jpg")),
            FileEntry(Path("b.jpg")),
        )
        assert group.duplicate_singletons() == [FileType.HERO]
        assert group.count_by_type() == {FileType.HERO: 2, FileType.FLOORPLAN: 1, FileType.GALLERY: 2}

    def test_with_files_keeps_membership(self):
        group = _group(FileEntry(Path("a.jpg")), FileEntry(Path("b.jpg")))
        updated = group.with_files([f.completed("u") for f in group.files])
        assert all(f.succeeded for f in updated.files)

        with pytest.raises(ValueError):
            group.with_files([FileEntry(Path("a.jpg"))])


class TestReconcilePlan:
    def test_first_hero_and_floorplan_only(self):
        files = [
            FileEntry(Path("hero1.jpg"), FileType.HERO).failed("x"),
            FileEntry(Path("hero2.jpg"), FileType.HERO).completed("u-hero2"),
            FileEntry(Path("hero3.jpg"), FileType.HERO).completed("u-hero3"),
            FileEntry(Path("plan.jpg"), FileType.FLOORPLAN).completed("u-plan"),
            FileEntry(Path("g1.jpg")).completed("u-g1"),
            FileEntry(Path("g2.jpg")).failed("x"),
        ]
        plan = ReconcilePlan.from_files(files)
        assert plan.hero_image == "u-hero2"
        assert plan.floor_plan_image == "u-plan"
        # extra hero is linked nowhere
        assert plan.gallery_urls == ("u-g1",)

    def test_empty(self):
        plan = ReconcilePlan.from_files([])
        assert plan.hero_image is None
        assert plan.floor_plan_image is None
        assert plan.gallery_urls == ()


class TestUploadConfig:
    def test_default_config(self):
        config = UploadConfig()
        assert config.batch_size == 3
        assert config.path_prefix == "properties"
        assert config.blog_path_prefix == "blog"
        assert config.compress_threshold == 2 * 1024 * 1024
