"""Pillow-backed image codec for the generation cache."""

import hashlib
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Tuple

from PIL import Image, ImageSequence

from .error_handling import codec_errors
from .image_utils import center_crop_box, cover_size

DIGEST_LENGTH = 6
JPEG_MODES = ("RGB", "L", "CMYK")

Frames = List[Image.Image]


class PillowCodec:
    """Decode, fingerprint, scale/crop and encode images with Pillow."""

    def __init__(self, resample: int = Image.Resampling.LANCZOS, jpeg_quality: int = 95):
        self._resample = resample
        self._jpeg_quality = jpeg_quality

    @contextmanager
    def open(self, path: Path) -> Iterator[Image.Image]:
        """Decode ``path``; the image is closed when the block exits."""
        with codec_errors(str(path)):
            image = Image.open(path)
            image.load()
        try:
            yield image
        finally:
            image.close()

    def size(self, image: Image.Image) -> Tuple[int, int]:
        return image.size

    def content_digest(self, image: Image.Image) -> str:
        """
        MD5 over the decoded frames, truncated to 6 hex characters.

        Hashing pixels rather than file bytes makes the digest follow what
        the decoder produces, so a re-saved file with identical pixels keeps
        its identity.
        """
        digest = hashlib.md5()
        with codec_errors(getattr(image, "filename", "") or "<image>"):
            for frame in ImageSequence.Iterator(image):
                digest.update(frame.mode.encode("ascii"))
                digest.update(f"{frame.width}x{frame.height}".encode("ascii"))
                palette = frame.getpalette() if frame.mode == "P" else None
                if palette:
                    digest.update(bytes(palette))
                digest.update(frame.tobytes())
            image.seek(0)
        return digest.hexdigest()[:DIGEST_LENGTH]

    def scale_and_crop(self, image: Image.Image, width: int, height: int) -> Frames:
        """Cover-scale then center-crop every frame to ``width`` x ``height``."""
        frames: Frames = []
        with codec_errors(getattr(image, "filename", "") or "<image>"):
            for frame in ImageSequence.Iterator(image):
                scaled_size = cover_size(frame.width, frame.height, width, height)
                scaled = frame.copy().resize(scaled_size, self._resample)
                frames.append(scaled.crop(center_crop_box(*scaled_size, width, height)))
            image.seek(0)
        return frames

    def write(self, image: Frames, path: Path) -> None:
        """Encode frames to ``path``; the format follows the file extension."""
        path = Path(path)
        with codec_errors(str(path)):
            image_format = Image.registered_extensions().get(path.suffix.lower())
            if image_format is None:
                raise ValueError(f"unknown file extension: {path.suffix}")

            frames = list(image)
            options = {}
            if image_format == "JPEG":
                frames = [f if f.mode in JPEG_MODES else f.convert("RGB") for f in frames]
                options["quality"] = self._jpeg_quality
            if image_format == "GIF":
                options["optimize"] = True

            first, rest = frames[0], frames[1:]
            if rest:
                options.update(
                    save_all=True,
                    append_images=rest,
                    loop=first.info.get("loop", 0),
                    duration=[f.info.get("duration", 100) for f in frames],
                )
            first.save(path, format=image_format, **options)
