"""Shared data models for site images."""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator, model_validator

DEFAULT_SOURCE_KEY = "source_default"
SOURCE_KEY_PREFIX = "source_"


class MarkupStyle(str, Enum):
    """Composition style used to turn generated images into markup."""

    IMG = "img"
    PICTURE = "picture"
    PICTUREFILL = "picturefill"


class SourceSpec(BaseModel):
    """Size and media query for one named source of a responsive preset."""

    model_config = ConfigDict(frozen=True)

    width: Optional[PositiveInt] = None
    height: Optional[PositiveInt] = None
    media: Optional[str] = None


class Preset(BaseModel):
    """Named width/height/attribute bundle from the site configuration.

    Keys of the raw mapping that start with ``source_`` are collected into
    ``sources`` in declaration order. ``attr`` is accepted as an alias of
    ``attrs`` to match the configuration file format.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = ""
    width: Optional[PositiveInt] = None
    height: Optional[PositiveInt] = None
    attrs: Dict[str, Optional[str]] = Field(default_factory=dict, alias="attr")
    sources: Dict[str, SourceSpec] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collect_sources(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        sources = dict(data.pop("sources", None) or {})
        for key in [k for k in data if str(k).startswith(SOURCE_KEY_PREFIX)]:
            sources[key] = data.pop(key) or {}
        data["sources"] = sources
        return data

    @field_validator("attrs", mode="before")
    @classmethod
    def _stringify_attrs(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {
                str(k): (None if v is None else str(v)) for k, v in value.items()
            }
        return value

    @model_validator(mode="after")
    def _require_default_source(self) -> "Preset":
        if self.sources and DEFAULT_SOURCE_KEY not in self.sources:
            raise ValueError(
                f"Preset '{self.name}' declares sources but no {DEFAULT_SOURCE_KEY}"
            )
        return self

    def source_specs(self) -> Dict[str, SourceSpec]:
        """Return the named sources, synthesizing a default one if none are declared."""
        if self.sources:
            return dict(self.sources)
        return {DEFAULT_SOURCE_KEY: SourceSpec(width=self.width, height=self.height)}


class Directive(BaseModel):
    """A parsed image directive."""

    model_config = ConfigDict(frozen=True)

    size_token: Optional[str] = None
    source_path: str
    raw_attrs: str = ""
    attrs: Dict[str, Optional[str]] = Field(default_factory=dict)
    source_overrides: Dict[str, str] = Field(default_factory=dict)


class SourceImage(BaseModel):
    """An opened source image and its normalized content digest."""

    model_config = ConfigDict(frozen=True)

    path: str
    native_width: PositiveInt
    native_height: PositiveInt
    content_digest: str = Field(pattern=r"^[0-9a-f]{6}$")

    @property
    def native_ratio(self) -> float:
        return self.native_width / self.native_height


class Plan(BaseModel):
    """Final output dimensions for one source image."""

    model_config = ConfigDict(frozen=True)

    target_width: PositiveInt
    target_height: PositiveInt
    was_clamped: bool = False


class GeneratedAsset(BaseModel):
    """A generated (or previously generated) image on disk."""

    relative_output_path: str
    absolute_output_path: Path
    generated: bool = False
    source: Optional[SourceImage] = None
    plan: Optional[Plan] = None


class ImageConfig(BaseModel):
    """Resolved configuration for rendering image directives."""

    site_source: Path = Path(".")
    site_dest: Path = Path("_site")
    source: str = "."
    output: str = "generated"
    baseurl: str = ""
    markup: MarkupStyle = MarkupStyle.IMG
    presets: Dict[str, Preset] = Field(default_factory=dict)

    @field_validator("presets", mode="before")
    @classmethod
    def _name_presets(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        named = {}
        for name, preset in value.items():
            if preset is None:
                preset = {}
            if isinstance(preset, dict):
                preset = {**preset, "name": str(name)}
            named[str(name)] = preset
        return named

    @property
    def source_root(self) -> Path:
        return self.site_source / self.source

    @property
    def output_root(self) -> Path:
        return self.site_dest


class RenderResult(BaseModel):
    """Result of rendering a single directive."""

    directive: str
    markup: str = ""
    success: bool = False
    error: str = ""
    error_type: str = ""
    clamped: bool = False
    assets: List[GeneratedAsset] = Field(default_factory=list)
    processing_time: float = 0.0
