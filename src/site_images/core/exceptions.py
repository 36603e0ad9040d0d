"""Custom exceptions for site images."""

from __future__ import annotations

from typing import Optional


class SiteImagesError(Exception):
    """Base exception for all site images errors."""


class ConfigurationError(SiteImagesError):
    """Error raised for invalid configuration files or preset tables."""


class MalformedDirective(SiteImagesError):
    """Error raised when directive text does not match the directive grammar."""

    def __init__(self, directive: str):
        self.directive = directive
        super().__init__(
            f"Can't read this directive: '{directive}'. "
            'Try: [preset or WxH] path/to/img.jpg [attr="value"]'
        )


class UnknownPreset(SiteImagesError):
    """Error raised when a size token is neither a preset nor a WxH pattern."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(
            f"Can't find the \"{token}\" preset. "
            "Check the image presets in the site configuration."
        )


class SourceNotFound(SiteImagesError):
    """Error raised when a referenced source image does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Missing: {path}")


class DegenerateDimensions(SiteImagesError):
    """Error raised when computed target dimensions are not positive."""


class CodecFailure(SiteImagesError):
    """Error raised when the image codec fails to decode or encode a source."""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        message = f"Image codec failed for {path}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class UpscaleClamped(UserWarning):
    """Warning issued when requested dimensions exceed the source resolution."""
