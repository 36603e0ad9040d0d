"""Loading the ``image`` section of a site configuration file."""

from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from .exceptions import ConfigurationError
from .models import ImageConfig

CONFIG_SECTION = "image"


def config_from_mapping(
    site_config: Mapping[str, Any],
    site_source: Optional[Union[str, Path]] = None,
    site_dest: Optional[Union[str, Path]] = None,
) -> ImageConfig:
    """
    Build an ImageConfig from a parsed site configuration.

    Site-level ``source``, ``destination`` and ``baseurl`` keys are used as
    defaults; explicit ``site_source`` / ``site_dest`` arguments win.

    Raises:
        ConfigurationError: If the image section is invalid
    """
    section = site_config.get(CONFIG_SECTION) or {}
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"'{CONFIG_SECTION}' must be a mapping, got {type(section).__name__}")

    values = dict(section)
    values["presets"] = values.get("presets") or {}
    if site_config.get("baseurl") and "baseurl" not in values:
        values["baseurl"] = site_config["baseurl"]

    source = site_source if site_source is not None else site_config.get("source")
    dest = site_dest if site_dest is not None else site_config.get("destination")
    if source is not None:
        values["site_source"] = Path(source)
    if dest is not None:
        values["site_dest"] = Path(dest)

    try:
        return ImageConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid image configuration: {e}") from e


def load_config(
    path: Union[str, Path],
    site_source: Optional[Union[str, Path]] = None,
    site_dest: Optional[Union[str, Path]] = None,
) -> ImageConfig:
    """
    Read a YAML site configuration file and return its image settings.

    Relative site directories resolve against the configuration file's
    directory when not given explicitly.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    config_path = Path(path)
    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise ConfigurationError(f"Can't read configuration file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Malformed YAML in {config_path}: {e}") from e

    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"{config_path} does not contain a mapping")

    if site_source is None:
        site_source = config_path.parent / raw.get("source", ".")
    if site_dest is None:
        site_dest = config_path.parent / raw.get("destination", "_site")

    return config_from_mapping(raw, site_source=site_source, site_dest=site_dest)
