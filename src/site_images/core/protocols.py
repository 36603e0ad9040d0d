"""Protocol definitions for dependency injection and testability."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, ContextManager, Protocol, Tuple

from .models import RenderResult


class ImageCodecProtocol(Protocol):
    """Protocol for the image codec used by the generation cache.

    ``open`` yields an opaque decoded image handle that is only valid inside
    the ``with`` block.
    """

    def open(self, path: Path) -> ContextManager[Any]:
        """Decode the image at ``path``."""
        ...

    def size(self, image: Any) -> Tuple[int, int]:
        """Return ``(width, height)`` of a decoded image."""
        ...

    def content_digest(self, image: Any) -> str:
        """Return the 6 hex character digest of the decoded content."""
        ...

    def scale_and_crop(self, image: Any, width: int, height: int) -> Any:
        """Cover-scale then center-crop to exactly ``width`` x ``height``."""
        ...

    def write(self, image: Any, path: Path) -> None:
        """Encode ``image`` to ``path`` using the format implied by its extension."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, *args: Any, **kwargs: Any) -> None:
        ...

    def info(self, message: str, *args: Any, **kwargs: Any) -> None:
        ...

    def warning(self, message: str, *args: Any, **kwargs: Any) -> None:
        ...

    def error(self, message: str, *args: Any, **kwargs: Any) -> None:
        ...


class DirectiveRenderer(ABC):
    """Abstract renderer turning one directive into a result."""

    @abstractmethod
    def process(self, directive: str) -> RenderResult:
        """Render a directive, capturing package errors in the result."""
        ...

