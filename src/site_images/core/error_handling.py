# src/site_images/core/error_handling.py

import functools
import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, TypeVar

from PIL import Image, UnidentifiedImageError

from .exceptions import CodecFailure, SiteImagesError

F = TypeVar("F", bound=Callable[..., Any])

CODEC_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    ValueError,
    SyntaxError,
)


@contextmanager
def codec_errors(source_path: str) -> Iterator[None]:
    """
    Translate image codec failures raised in the block into CodecFailure.

    Package errors pass through untouched so that, for example, a
    SourceNotFound raised inside the block is not reported as a codec failure.
    """
    try:
        yield
    except SiteImagesError:
        raise
    except CODEC_ERRORS as e:
        raise CodecFailure(source_path, e) from e


def with_error_handling(func: F) -> F:
    """
    A decorator that logs package errors raised by ``func`` and re-raises them.
    Unexpected exceptions are logged with a traceback and propagated as-is.
    """
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        logger = logging.getLogger(func.__module__ + '.' + func.__name__)
        try:
            return func(*args, **kwargs)
        except SiteImagesError as e:
            logger.error(f"{type(e).__name__} in '{func.__name__}': {e}")
            raise
        except Exception as e:
            logger.error(f"Unhandled error in '{func.__name__}': {e}", exc_info=True)
            raise
    return wrapper  # type: ignore[return-value]


class BatchOperationContextManager:
    """
    Context manager for batch operations to collect and summarize errors.
    """
    def __init__(self, operation_name: str = "Batch Operation"):
        self.operation_name = operation_name
        self.errors: List[Dict[str, str]] = []
        self.logger = logging.getLogger(self.__class__.__module__ + '.' + self.__class__.__name__)

    def __enter__(self) -> "BatchOperationContextManager":
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s)."
            )
            for i, error_detail in enumerate(self.errors):
                self.logger.error(
                    f"  Error {i+1}/{len(self.errors)} for item "
                    f"'{error_detail['item']}': {error_detail['error']}"
                )
        elif exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            self.logger.info(f"{self.operation_name} completed successfully.")

        # Never swallow exceptions raised inside the block.
        return False

    def add_error(self, error_message: str, item_identifier: str = "Unknown item") -> None:
        """
        Report an error for a specific item within the 'with' block.

        Args:
            error_message: The error message or exception string.
            item_identifier: A string identifying the item that failed (e.g. the directive).
        """
        self.errors.append({"item": item_identifier, "error": str(error_message)})
        self.logger.debug(f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}")

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)
