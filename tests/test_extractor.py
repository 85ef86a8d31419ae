import pytest

from cursor2deb.extractor import extract_image
from cursor2deb.utils import ExtractionError


def _script(path, body):
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(0o755)
    return path


def test_extract_returns_squashfs_root(tmp_path, fake_appimage_bytes):
    image = tmp_path / "Cursor.AppImage"
    image.write_bytes(fake_appimage_bytes)
    image.chmod(0o755)
    extract_dir = tmp_path / "extract"

    root = extract_image(image, extract_dir)

    assert root == (extract_dir / "squashfs-root").resolve()
    assert (root / "AppRun").is_file()


def test_extract_runs_in_extract_dir_without_changing_cwd(tmp_path, monkeypatch):
    workdir = tmp_path / "elsewhere"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    image = _script(tmp_path / "img", 'pwd > where.txt && mkdir squashfs-root\n')
    extract_dir = tmp_path / "extract"

    extract_image(image, extract_dir)

    assert (extract_dir / "where.txt").read_text().strip() == str(extract_dir.resolve())
    assert not (workdir / "squashfs-root").exists()


def test_nonzero_exit_is_extraction_error(tmp_path):
    image = _script(tmp_path / "img", "mkdir squashfs-root\nexit 3\n")
    with pytest.raises(ExtractionError):
        extract_image(image, tmp_path / "extract")


def test_missing_root_after_success_is_extraction_error(tmp_path):
    image = _script(tmp_path / "img", "exit 0\n")
    with pytest.raises(ExtractionError, match="squashfs-root"):
        extract_image(image, tmp_path / "extract")


def test_unexecutable_image_is_extraction_error(tmp_path):
    image = tmp_path / "img"
    image.write_text("not a program")
    image.chmod(0o644)
    with pytest.raises(ExtractionError):
        extract_image(image, tmp_path / "extract")
