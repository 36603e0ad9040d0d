"""Dimension planning and output naming utilities for site images."""

import math
import posixpath
import warnings
from pathlib import Path
from typing import Optional, Tuple

from .exceptions import DegenerateDimensions, MalformedDirective, UpscaleClamped
from .models import Plan


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))


def plan_dimensions(
    native_width: int,
    native_height: int,
    requested_width: Optional[int] = None,
    requested_height: Optional[int] = None,
    source_path: str = "",
) -> Plan:
    """
    Compute output dimensions for a source image without upscaling.

    A missing requested dimension is derived from the native aspect ratio.
    When the request exceeds the native resolution on either axis, the
    largest box with the *requested* aspect ratio that fits inside the source
    is used instead and an UpscaleClamped warning is issued.

    Args:
        native_width: Width of the source image
        native_height: Height of the source image
        requested_width: Requested output width, or None to derive it
        requested_height: Requested output height, or None to derive it
        source_path: Source path used in the clamp warning

    Returns:
        Plan with rounded, positive target dimensions

    Raises:
        DegenerateDimensions: If a dimension is zero, negative or rounds to zero
    """
    if native_width <= 0 or native_height <= 0:
        raise DegenerateDimensions(
            f"Source {source_path or 'image'} has invalid size {native_width}x{native_height}"
        )
    for requested in (requested_width, requested_height):
        if requested is not None and requested <= 0:
            raise DegenerateDimensions(
                f"Requested size {requested_width}x{requested_height} is not positive"
            )

    native_ratio = native_width / native_height

    if requested_width is None and requested_height is None:
        return Plan(target_width=native_width, target_height=native_height)

    # Derive from integer products so a native-size request stays exact.
    if requested_height is None:
        gen_width = float(requested_width)
        gen_height = requested_width * native_height / native_width
    elif requested_width is None:
        gen_width = requested_height * native_width / native_height
        gen_height = float(requested_height)
    else:
        gen_width = float(requested_width)
        gen_height = float(requested_height)

    gen_ratio = gen_width / gen_height
    clamped = False

    # Don't allow upscaling. Fit the requested ratio inside the source instead.
    if gen_width > native_width or gen_height > native_height:
        clamped = True
        gen_width = native_width if native_ratio < gen_ratio else native_height * gen_ratio
        gen_height = native_height if native_ratio > gen_ratio else native_width / gen_ratio
        warnings.warn(
            UpscaleClamped(
                f"{source_path or 'Source image'} is smaller than the requested output "
                "file. It will be resized without upscaling."
            ),
            stacklevel=2,
        )

    target_width = round_half_up(gen_width)
    target_height = round_half_up(gen_height)
    if target_width <= 0 or target_height <= 0:
        raise DegenerateDimensions(
            f"Computed size {target_width}x{target_height} for "
            f"{source_path or 'image'} is not positive"
        )

    return Plan(target_width=target_width, target_height=target_height, was_clamped=clamped)


def cover_size(
    native_width: int, native_height: int, target_width: int, target_height: int
) -> Tuple[int, int]:
    """
    Size that covers the target box while keeping the native aspect ratio.

    One side matches the target exactly, the other may exceed it.
    """
    scale = max(target_width / native_width, target_height / native_height)
    return (
        max(target_width, round_half_up(native_width * scale)),
        max(target_height, round_half_up(native_height * scale)),
    )


def center_crop_box(
    width: int, height: int, target_width: int, target_height: int
) -> Tuple[int, int, int, int]:
    """Return the ``(left, upper, right, lower)`` box of a centered crop."""
    left = (width - target_width) // 2
    upper = (height - target_height) // 2
    return (left, upper, left + target_width, upper + target_height)


def generated_name(source_path: str, width: int, height: int, digest: str) -> str:
    """Build the generation identity ``{basename}-{W}x{H}-{digest}{ext}``."""
    filename = posixpath.basename(source_path)
    basename, ext = posixpath.splitext(filename)
    return f"{basename}-{width}x{height}-{digest}{ext}"


def mirrored_subdir(source_path: str) -> str:
    """
    Return the normalized directory of ``source_path`` that is mirrored below
    the output directory, or "" for a top-level source.

    Raises:
        MalformedDirective: If the path climbs out of the source root
    """
    source_dir = posixpath.dirname(source_path.replace("\\", "/")).lstrip("/")
    source_dir = posixpath.normpath(source_dir) if source_dir else ""
    if source_dir == ".":
        return ""
    if source_dir == ".." or source_dir.startswith("../"):
        raise MalformedDirective(source_path)
    return source_dir


def calculate_output_paths(
    source_path: str, name: str, output_root: Path, output_dir: str
) -> Tuple[str, Path]:
    """
    Calculate where a generated image lives.

    The source's subdirectory is mirrored below ``output_dir``.

    Args:
        source_path: Source path relative to the source root
        name: Generated file name
        output_root: Site output directory
        output_dir: Generated images directory relative to output_root

    Returns:
        Tuple of the site-relative URL path (leading "/") and the absolute path

    Raises:
        MalformedDirective: If the source path climbs out of the source root
    """
    source_dir = mirrored_subdir(source_path)
    relative = posixpath.normpath(posixpath.join("/", output_dir, source_dir, name))
    # normpath keeps a double leading slash
    relative = "/" + relative.lstrip("/")
    absolute = Path(output_root, relative.lstrip("/"))
    return relative, absolute


def prefix_baseurl(path: str, baseurl: str) -> str:
    """Prefix a site-relative path with the site's base URL."""
    if not baseurl:
        return path
    return baseurl.rstrip("/") + "/" + path.lstrip("/")
