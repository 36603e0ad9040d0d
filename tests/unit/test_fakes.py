"""Tests for fake implementations to ensure they work correctly."""

import io

import pytest
from PIL import Image

from site_images.core.exceptions import CodecFailure
from site_images.core.observability import LogContext
from site_images.testing.fakes import (
    FakeCodec,
    FakeImage,
    FakeLogger,
    create_test_image,
    setup_test_site,
    write_fake_image,
)


class TestFakeImage:
    """Tests for the FakeImage file format."""

    def test_bytes_header(self):
        data = FakeImage(30, 20, b"abc").to_bytes()
        assert data == b"FAKEIMG 30x20\nabc"
        assert FakeImage.from_bytes(data) == FakeImage(30, 20, b"abc")

    def test_from_bytes_rejects_other_data(self):
        with pytest.raises(ValueError):
            FakeImage.from_bytes(b"\xff\xd8 jpeg")


class TestFakeCodec:
    """Tests for FakeCodec to ensure it behaves like a codec."""

    def test_open_reads_fake_file(self, tmp_path):
        codec = FakeCodec()
        path = write_fake_image(tmp_path / "nested" / "a.jpg", 40, 10)

        with codec.open(path) as image:
            assert codec.size(image) == (40, 10)

        assert codec.open_count == 1

    def test_open_non_fake_file_is_codec_failure(self, tmp_path):
        path = tmp_path / "a.jpg"
        path.write_bytes(b"garbage")

        with pytest.raises(CodecFailure):
            with FakeCodec().open(path):
                pass

    def test_failure_mode(self, tmp_path):
        codec = FakeCodec()
        codec.set_failure_mode(True, "disk on fire")
        path = write_fake_image(tmp_path / "a.jpg", 4, 4)

        with pytest.raises(CodecFailure, match="disk on fire"):
            with codec.open(path):
                pass

    def test_digest_follows_content(self, tmp_path):
        codec = FakeCodec()
        first = FakeImage(10, 10, b"one")
        second = FakeImage(10, 10, b"two")

        assert codec.content_digest(first) == codec.content_digest(FakeImage(10, 10, b"one"))
        assert codec.content_digest(first) != codec.content_digest(second)
        assert len(codec.content_digest(first)) == 6

    def test_scale_and_write(self, tmp_path):
        codec = FakeCodec()
        scaled = codec.scale_and_crop(FakeImage(100, 50, b"p"), 10, 5)
        codec.write(scaled, tmp_path / "out.jpg")

        assert codec.scaled == [(10, 5)]
        assert codec.write_count == 1
        assert FakeImage.from_bytes((tmp_path / "out.jpg").read_bytes()) == FakeImage(10, 5, b"p")


class TestFakeLogger:
    """Tests for FakeLogger."""

    def test_levels_and_filtering(self):
        logger = FakeLogger()
        logger.info("one")
        logger.warning("two", name="a.jpg")

        assert len(logger.get_logs()) == 2
        [warning] = logger.get_logs("WARNING")
        assert warning["message"] == "two"
        assert warning["name"] == "a.jpg"

    def test_context_fields(self):
        logger = FakeLogger()
        context = LogContext(correlation_id="cid", operation="render", metadata={"preset": "g"})

        logger.error("failed", context)

        [entry] = logger.get_logs()
        assert entry["correlation_id"] == "cid"
        assert entry["operation"] == "render"
        assert entry["preset"] == "g"

    def test_clear_logs(self):
        logger = FakeLogger()
        logger.debug("x")
        logger.clear_logs()
        assert logger.get_logs() == []


def test_create_test_image():
    data = create_test_image(64, 32, image_format="PNG")
    with Image.open(io.BytesIO(data)) as image:
        assert image.format == "PNG"
        assert image.size == (64, 32)


def test_setup_test_site(tmp_path):
    site = setup_test_site(tmp_path)

    assert site["images"] == site["site_source"] / "assets"
    assert (site["images"] / "poster.jpg").is_file()
    assert (site["images"] / "photos" / "tall.png").is_file()
    assert (site["images"] / "notes.txt").is_file()
    assert site["site_dest"].is_dir()
