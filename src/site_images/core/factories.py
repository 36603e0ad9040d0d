"""Factory classes for creating configured service instances."""

import logging
from typing import Any, Optional

from .codec import PillowCodec
from .logging_config import get_logger
from .models import ImageConfig
from .observability import LogContext, MetricsCollector, StructuredLogger
from .protocols import ImageCodecProtocol, LoggerProtocol
from .services import GenerationCache, ImageTagRenderer, KeepFilesRegistry


class LoggerAdapter:
    """Adapter to make a standard logger compatible with LoggerProtocol."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _format(self, message: str, context: Optional[LogContext], **kwargs: Any) -> str:
        return StructuredLogger.format_message(message, context, **kwargs)

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._logger.debug(self._format(message, context, **kwargs))

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._logger.info(self._format(message, context, **kwargs))

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._logger.warning(self._format(message, context, **kwargs))

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._logger.error(self._format(message, context, **kwargs))


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(component: str) -> LoggerProtocol:
        """Create a logger for a package component."""
        return LoggerAdapter(get_logger(component))


class RendererFactory:
    """Factory for creating a fully wired directive renderer."""

    @staticmethod
    def create_renderer(
        config: ImageConfig,
        keep_files: Optional[KeepFilesRegistry] = None,
        codec: Optional[ImageCodecProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> ImageTagRenderer:
        """
        Create a renderer for ``config``.

        The output directory is registered with ``keep_files`` here, once,
        instead of on every render.
        """
        if codec is None:
            codec = PillowCodec()

        cache = GenerationCache(
            codec=codec,
            output_root=config.output_root,
            output_dir=config.output,
            logger=logger or LoggerFactory.create_logger("cache"),
            metrics_collector=metrics_collector,
        )
        renderer = ImageTagRenderer(
            config=config,
            cache=cache,
            logger=logger or LoggerFactory.create_logger("renderer"),
        )

        if keep_files is not None:
            for path in renderer.keep_files:
                keep_files.register(path)

        return renderer
