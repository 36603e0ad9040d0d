"""Directive parsing, size resolution and attribute merging."""

import re
from typing import Dict, Mapping, Optional, Tuple

from .exceptions import DegenerateDimensions, MalformedDirective, UnknownPreset
from .models import Directive, Preset

AttributeSet = Dict[str, Optional[str]]

DIRECTIVE_RE = re.compile(
    r"^(?:(?P<preset>[^\s.:/]+)\s+)?"
    r"(?P<image_src>[^\s]+\.[a-zA-Z0-9]{3,4})"
    r"\s*(?P<html_attr>[\s\S]+)?$"
)
ATTRIBUTE_RE = re.compile(r'(?P<attr>[^\s="]+)(?:="(?P<value>[^"]*)")?')
SOURCE_OVERRIDE_RE = re.compile(
    r'(?:^|\s)(?P<key>source_[^\s:="]+):\s+(?P<src>[^\s"]+\.[a-zA-Z0-9]{3,4})(?=\s|$)'
)
DIMENSIONS_RE = re.compile(r"^(?:(?P<width>\d+)|auto)x(?:(?P<height>\d+)|auto)$", re.IGNORECASE)


def parse_attributes(text: Optional[str]) -> AttributeSet:
    """
    Parse ``name`` and ``name="value"`` tokens into an ordered attribute set.

    Names without a value become flag attributes (value None). A repeated
    name keeps its first position and takes the last value.
    """
    attrs: AttributeSet = {}
    if not text:
        return attrs
    for match in ATTRIBUTE_RE.finditer(text):
        attrs[match.group("attr")] = match.group("value")
    return attrs


def parse_directive(text: str) -> Directive:
    """
    Split a directive into its size token, source path and attributes.

    Raises:
        MalformedDirective: If no source path can be found
    """
    markup = text.strip()
    match = DIRECTIVE_RE.match(markup)
    if not match:
        raise MalformedDirective(markup)

    raw_attrs = match.group("html_attr") or ""
    overrides: Dict[str, str] = {}
    for override in SOURCE_OVERRIDE_RE.finditer(raw_attrs):
        overrides[override.group("key")] = override.group("src")
    attr_text = SOURCE_OVERRIDE_RE.sub(" ", raw_attrs) if overrides else raw_attrs

    return Directive(
        size_token=match.group("preset"),
        source_path=match.group("image_src"),
        raw_attrs=raw_attrs.strip(),
        attrs=parse_attributes(attr_text),
        source_overrides=overrides,
    )


def resolve_size(token: Optional[str], presets: Mapping[str, Preset]) -> Preset:
    """
    Turn a size token into a preset.

    An absent token means native size. Known preset names win over the
    ``WIDTHxHEIGHT`` pattern, where either side may be ``auto``.

    Raises:
        UnknownPreset: If the token is neither a preset nor a dimension pattern
        DegenerateDimensions: If an explicit dimension is zero
    """
    if token is None:
        return Preset()

    preset = presets.get(token)
    if preset is not None:
        return preset

    dim = DIMENSIONS_RE.match(token)
    if not dim:
        raise UnknownPreset(token)

    width = int(dim.group("width")) if dim.group("width") else None
    height = int(dim.group("height")) if dim.group("height") else None
    if width == 0 or height == 0:
        raise DegenerateDimensions(f"Size '{token}' has a zero dimension")
    return Preset(name=token, width=width, height=height)


def merge_attributes(preset_attrs: Mapping[str, Optional[str]], attrs: Mapping[str, Optional[str]]) -> AttributeSet:
    """Overlay directive attributes on preset attributes, keeping preset order."""
    merged: AttributeSet = dict(preset_attrs)
    merged.update(attrs)
    return merged


def render_attributes(attrs: Mapping[str, Optional[str]]) -> str:
    """Render ``name="value" `` / ``name `` pairs in order."""
    parts = []
    for name, value in attrs.items():
        if value is not None:
            parts.append(f'{name}="{value}" ')
        else:
            parts.append(f"{name} ")
    return "".join(parts)


def resolve_directive(text: str, presets: Mapping[str, Preset]) -> Tuple[Directive, Preset, AttributeSet]:
    """Parse, resolve and merge a directive without touching any image."""
    directive = parse_directive(text)
    preset = resolve_size(directive.size_token, presets)
    attrs = merge_attributes(preset.attrs, directive.attrs)
    return directive, preset, attrs
