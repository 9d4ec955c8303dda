"""Tests for file classification and name sanitization."""

import pytest

from media_ingest.core.classifier import (
    DEFAULT_MIME_TYPE,
    FileKind,
    Lane,
    extension_of,
    format_bytes,
    get_file_kind,
    get_mime_type,
    is_processable_image,
    is_visual,
    lane_for,
    sanitize_filename,
    sanitize_stem,
)


class TestGetFileKind:
    """Tests for get_file_kind."""

    @pytest.mark.parametrize(
        "filename,kind",
        [
            ("photo.jpg", FileKind.IMAGE),
            ("PHOTO.JPEG", FileKind.IMAGE),
            ("scan.tiff", FileKind.IMAGE),
            ("iphone.HEIC", FileKind.IMAGE),
            ("camera.hif", FileKind.IMAGE),
            ("loop.gif", FileKind.GIF),
            ("clip.MOV", FileKind.VIDEO),
            ("song.flac", FileKind.AUDIO),
            ("notes.pdf", FileKind.FILE),
            ("README", FileKind.FILE),
        ],
    )
    def test_kinds(self, filename, kind):
        assert get_file_kind(filename) == kind

    def test_gif_is_visual_but_not_processable(self):
        assert is_visual(get_file_kind("a.gif"))
        assert not is_processable_image("a.gif")
        assert is_processable_image("IMG_0001.HEIC")
        assert get_file_kind("IMG_0001.HEIC") == FileKind.IMAGE
        assert not is_visual(FileKind.VIDEO)


class TestMimeTypes:
    def test_known_extensions(self):
        assert get_mime_type("a.JPG") == "image/jpeg"
        assert get_mime_type("a.mov") == "video/quicktime"
        assert get_mime_type("a.m4a") == "audio/mp4"

    def test_unknown_falls_back_to_octet_stream(self):
        assert get_mime_type("archive.xyz") == DEFAULT_MIME_TYPE
        assert get_mime_type("no-extension") == DEFAULT_MIME_TYPE


class TestLanes:
    def test_images_and_gifs_use_image_lane(self):
        assert lane_for("a.png") == Lane.IMAGE
        assert lane_for("a.gif") == Lane.IMAGE

    def test_everything_else_is_raw(self):
        assert lane_for("a.mp4") == Lane.RAW
        assert lane_for("a.pdf") == Lane.RAW


class TestSanitize:
    def test_collision_example(self):
        assert sanitize_filename("IMG 01.JPG") == "img-01.jpg"
        assert sanitize_filename("img-01.jpg") == "img-01.jpg"

    def test_collapses_and_trims_dashes(self):
        assert sanitize_stem("--Hello,  World!!--.png") == "hello-world"

    def test_empty_stem_becomes_file(self):
        assert sanitize_stem("___.jpg") == "file"
        assert sanitize_filename("!!!.PDF") == "file.pdf"

    def test_non_ascii_is_replaced(self):
        assert sanitize_stem("Café Crème.jpg") == "caf-cr-me"

    def test_extension_of(self):
        assert extension_of("a.b.TXT") == ".txt"
        assert extension_of("noext") == ""


class TestFormatBytes:
    @pytest.mark.parametrize(
        "size,expected",
        [(512, "512 B"), (2048, "2.0 KB"), (5 * 1024 * 1024, "5.00 MB")],
    )
    def test_format(self, size, expected):
        assert format_bytes(size) == expected
