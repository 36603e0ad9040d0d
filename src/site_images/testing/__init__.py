"""Testing utilities and fakes for site images."""

from .fakes import (
    FakeCodec,
    FakeImage,
    FakeLogger,
    create_test_image,
    setup_test_site,
    write_fake_image,
)

__all__ = [
    "FakeCodec",
    "FakeImage",
    "FakeLogger",
    "create_test_image",
    "setup_test_site",
    "write_fake_image",
]
