"""Core utilities and shared components for site images."""

from .codec import PillowCodec
from .config import config_from_mapping, load_config
from .directives import (
    merge_attributes,
    parse_attributes,
    parse_directive,
    render_attributes,
    resolve_size,
)
from .exceptions import (
    CodecFailure,
    ConfigurationError,
    DegenerateDimensions,
    MalformedDirective,
    SiteImagesError,
    SourceNotFound,
    UnknownPreset,
    UpscaleClamped,
)
from .image_utils import calculate_output_paths, generated_name, plan_dimensions
from .logging_config import configure_debug_logging, get_logger, setup_logger
from .models import (
    Directive,
    GeneratedAsset,
    ImageConfig,
    MarkupStyle,
    Plan,
    Preset,
    RenderResult,
    SourceImage,
    SourceSpec,
)
from .services import GenerationCache, ImageTagRenderer, KeepFilesRegistry

__all__ = [
    "Directive",
    "GeneratedAsset",
    "ImageConfig",
    "MarkupStyle",
    "Plan",
    "Preset",
    "RenderResult",
    "SourceImage",
    "SourceSpec",
    "PillowCodec",
    "config_from_mapping",
    "load_config",
    "merge_attributes",
    "parse_attributes",
    "parse_directive",
    "render_attributes",
    "resolve_size",
    "calculate_output_paths",
    "generated_name",
    "plan_dimensions",
    "setup_logger",
    "get_logger",
    "configure_debug_logging",
    "GenerationCache",
    "ImageTagRenderer",
    "KeepFilesRegistry",
    "SiteImagesError",
    "ConfigurationError",
    "MalformedDirective",
    "UnknownPreset",
    "SourceNotFound",
    "DegenerateDimensions",
    "CodecFailure",
    "UpscaleClamped",
]
