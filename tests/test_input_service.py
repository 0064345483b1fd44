import sys

import pytest

from quick_gif.domain.models import SourceSelection
from quick_gif.services.format_service import resolve_format
from quick_gif.services.input_service import normalize_selection

posix_links = pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")


def test_file_selection_keeps_order_and_filters_extensions(make_images):
    c, a, txt, b = make_images("c.png", "a.PNG", "notes.txt", "b.jpg")
    candidates = normalize_selection(SourceSelection.from_paths([c, a, txt, b]))
    assert [p.name for p in candidates] == ["c.png", "a.PNG", "b.jpg"]
    assert candidates.extensions == ("png", "png", "jpg")


def test_single_directory_expands_to_its_images(make_images, tmp_path):
    make_images("1.png", "2.png", "readme.md", folder="shots")
    (tmp_path / "shots" / "nested").mkdir()
    (tmp_path / "shots" / "nested" / "3.png").write_bytes(b"x")

    candidates = normalize_selection(SourceSelection.from_paths([tmp_path / "shots"]))
    assert sorted(p.name for p in candidates) == ["1.png", "2.png"]
    assert all(p.is_absolute() for p in candidates)


def test_duplicates_are_dropped(make_images):
    a, b = make_images("a.png", "b.png")
    candidates = normalize_selection(SourceSelection.from_paths([a, b, a]))
    assert [p.name for p in candidates] == ["a.png", "b.png"]


def test_missing_paths_are_ignored(tmp_path, make_images):
    (a,) = make_images("a.png")
    candidates = normalize_selection(SourceSelection.from_paths([tmp_path / "ghost.png", a]))
    assert [p.name for p in candidates] == ["a.png"]


def test_unreadable_directory_yields_empty_set(tmp_path, monkeypatch):
    folder = tmp_path / "locked"
    folder.mkdir()

    def boom(_):
        raise PermissionError("denied")

    monkeypatch.setattr("quick_gif.services.input_service.os.scandir", boom)
    candidates = normalize_selection(SourceSelection.from_paths([folder]))
    assert len(candidates) == 0
    assert not candidates


def test_custom_allow_list(make_images):
    a, b = make_images("a.png", "b.webp")
    candidates = normalize_selection(SourceSelection.from_paths([a, b]), allowed_extensions=[".WEBP"])
    assert [p.name for p in candidates] == ["b.webp"]


@posix_links
def test_symlinks_keep_the_selected_name_and_extension(tmp_path):
    store = tmp_path / "store"
    store.mkdir()
    links = []
    for i in range(3):
        blob = store / f"blob{i}.data"
        blob.write_bytes(b"x")
        link = tmp_path / f"frame{i}.png"
        link.symlink_to(blob)
        links.append(link)

    candidates = normalize_selection(SourceSelection.from_paths(links))

    assert [p.name for p in candidates] == ["frame0.png", "frame1.png", "frame2.png"]
    assert candidates.extensions == ("png", "png", "png")
    assert resolve_format(candidates).family.key == "png"


@posix_links
def test_link_and_its_target_count_once(tmp_path, make_images):
    (a,) = make_images("a.png")
    alias = tmp_path / "alias.png"
    alias.symlink_to(a)
    candidates = normalize_selection(SourceSelection.from_paths([a, alias]))
    assert [p.name for p in candidates] == ["a.png"]
