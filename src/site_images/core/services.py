"""Service implementations for rendering image directives."""

import errno
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple

from .directives import render_attributes, resolve_directive
from .error_handling import with_error_handling
from .exceptions import CodecFailure, SiteImagesError, SourceNotFound
from .image_utils import (
    calculate_output_paths,
    generated_name,
    mirrored_subdir,
    plan_dimensions,
    prefix_baseurl,
)
from .models import (
    DEFAULT_SOURCE_KEY,
    GeneratedAsset,
    ImageConfig,
    MarkupStyle,
    Plan,
    Preset,
    RenderResult,
    SourceImage,
    SourceSpec,
)
from .observability import LogContext, MetricsCollector, StructuredLogger, record_operation
from .protocols import DirectiveRenderer, ImageCodecProtocol, LoggerProtocol

# link() errors meaning the filesystem has no hard links for this path
NO_HARD_LINKS = frozenset(
    {errno.EPERM, errno.ENOTSUP, errno.EOPNOTSUPP, errno.EXDEV, errno.EMLINK}
)


class KeepFilesRegistry:
    """Host-owned list of output directories that must survive site cleanup."""

    def __init__(self, keep_files: Optional[Iterable[str]] = None):
        self._entries: List[str] = list(keep_files or [])
        self._lock = threading.Lock()

    def register(self, path: str) -> bool:
        """Add ``path`` once; returns False when it was already registered."""
        with self._lock:
            if path in self._entries:
                return False
            self._entries.append(path)
            return True

    @property
    def entries(self) -> List[str]:
        with self._lock:
            return list(self._entries)


class GenerationCache:
    """
    Content-addressed store of generated images.

    The file name encodes the source basename, the output size and a digest
    of the decoded source, so an existing file at the computed path is a
    cache hit. Files are never overwritten or removed here.
    """

    def __init__(
        self,
        codec: ImageCodecProtocol,
        output_root: Path,
        output_dir: str,
        logger: Optional[LoggerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._codec = codec
        self._output_root = Path(output_root)
        self._output_dir = output_dir
        self._logger = logger or StructuredLogger("cache")
        self._metrics_collector = metrics_collector
        self._locks: Dict[Path, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def identity(self, source: SourceImage, plan: Plan) -> Tuple[str, Path]:
        """Return the site-relative and absolute paths for a source and plan."""
        name = generated_name(
            source.path, plan.target_width, plan.target_height, source.content_digest
        )
        return calculate_output_paths(source.path, name, self._output_root, self._output_dir)

    def generate(
        self,
        source_root: Path,
        source_path: str,
        width: Optional[int] = None,
        height: Optional[int] = None,
        context: Optional[LogContext] = None,
    ) -> GeneratedAsset:
        """
        Return the generated image for ``source_path`` at the requested size.

        The decoded source is only held inside this call.

        Raises:
            SourceNotFound: If the source file does not exist
            DegenerateDimensions: If the planned size is not positive
            MalformedDirective: If the source path climbs out of the source root
            CodecFailure: If the source can't be decoded or the output encoded
        """
        context = (context or LogContext(component="generation_cache")).with_metadata(
            src=source_path
        )
        mirrored_subdir(source_path)
        absolute_source = Path(source_root, source_path)
        if not absolute_source.is_file():
            raise SourceNotFound(str(absolute_source))

        with self._codec.open(absolute_source) as image:
            native_width, native_height = self._codec.size(image)
            source = SourceImage(
                path=source_path,
                native_width=native_width,
                native_height=native_height,
                content_digest=self._codec.content_digest(image),
            )
            plan = plan_dimensions(native_width, native_height, width, height, source_path)
            if plan.was_clamped:
                self._logger.warning(
                    f"{source_path} is smaller than the requested output file. "
                    "It will be resized without upscaling.",
                    context,
                )
            return self._store(image, source, plan, context)

    def _lock_for(self, path: Path) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(path)
            if lock is None:
                lock = self._locks[path] = threading.Lock()
            return lock

    def _release_lock(self, path: Path, lock: threading.Lock) -> None:
        # Late arrivals find the file on disk and never need this lock again.
        with self._locks_guard:
            if self._locks.get(path) is lock:
                del self._locks[path]

    def _store(
        self, image: Any, source: SourceImage, plan: Plan, context: LogContext
    ) -> GeneratedAsset:
        relative, absolute = self.identity(source, plan)

        def asset(generated: bool) -> GeneratedAsset:
            return GeneratedAsset(
                relative_output_path=relative,
                absolute_output_path=absolute,
                generated=generated,
                source=source,
                plan=plan,
            )

        if absolute.exists():
            return self._hit(asset, absolute, context)

        lock = self._lock_for(absolute)
        try:
            with lock:
                if absolute.exists():
                    return self._hit(asset, absolute, context)

                self._logger.info(f"Generating {absolute.name}", context.with_operation("generate"))
                with record_operation(
                    self._metrics_collector, "generate", path=relative
                ) as details:
                    frames = self._codec.scale_and_crop(image, plan.target_width, plan.target_height)
                    details["written"] = self._write_atomically(frames, absolute, context)
                return asset(details["written"])
        finally:
            self._release_lock(absolute, lock)

    def _hit(
        self, asset: Callable[[bool], GeneratedAsset], absolute: Path, context: LogContext
    ) -> GeneratedAsset:
        self._logger.debug(f"Using existing {absolute.name}", context.with_operation("cache_hit"))
        with record_operation(self._metrics_collector, "cache_hit", path=str(absolute)):
            return asset(False)

    def _write_atomically(self, frames: Any, destination: Path, context: LogContext) -> bool:
        """Write to a temp file beside ``destination`` and link it into place.

        Returns False when another writer created the destination first.
        """
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=".tmp-", suffix=destination.suffix, dir=destination.parent
        )
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            self._codec.write(frames, tmp_path)
            try:
                os.link(tmp_path, destination)
            except FileExistsError:
                self._logger.debug(
                    f"{destination.name} was written concurrently, discarding duplicate",
                    context,
                )
                return False
            except OSError as e:
                if e.errno not in NO_HARD_LINKS:
                    raise CodecFailure(str(destination), e) from e
                # No hard links on this filesystem
                if destination.exists():
                    return False
                os.replace(tmp_path, destination)
            return True
        finally:
            tmp_path.unlink(missing_ok=True)


class ComposedSource(NamedTuple):
    """One generated source ready for markup composition."""

    name: str
    src: str
    media: Optional[str] = None


def compose_img(sources: List[ComposedSource], attrs: Mapping[str, Optional[str]]) -> str:
    """Single ``<img>`` built from the default source."""
    default = _default_source(sources)
    return f'<img src="{default.src}" {render_attributes(attrs)}>'


def compose_picture(sources: List[ComposedSource], attrs: Mapping[str, Optional[str]]) -> str:
    """``<picture>`` element listing sources in declared order."""
    # Markdown turns 4 leading spaces into code blocks, so lines are not indented.
    source_tags = ""
    for source in sources:
        media = f' media="{source.media}"' if source.name != DEFAULT_SOURCE_KEY and source.media else ""
        source_tags += f'<source src="{source.src}"{media}>\n'
    return (
        f"<picture {render_attributes(attrs)}>\n"
        f"{source_tags}"
        f"<p>{attrs.get('alt') or ''}</p>\n"
        "</picture>\n"
    )


def compose_picturefill(sources: List[ComposedSource], attrs: Mapping[str, Optional[str]]) -> str:
    """Picturefill ``<span>`` markup; sources are listed in reverse order."""
    # Picturefill applies the last matching source.
    source_tags = ""
    for source in reversed(sources):
        media = f' data-media="{source.media}"' if source.name != DEFAULT_SOURCE_KEY and source.media else ""
        source_tags += f'<span data-src="{source.src}"{media}></span>\n'
    default = _default_source(sources)
    return (
        f"<span {render_attributes(attrs)}>\n"
        f"{source_tags}"
        "<noscript>\n"
        f'<img src="{default.src}" alt="{attrs.get("data-alt") or ""}">\n'
        "</noscript>\n"
        "</span>\n"
    )


def _default_source(sources: List[ComposedSource]) -> ComposedSource:
    for source in sources:
        if source.name == DEFAULT_SOURCE_KEY:
            return source
    return sources[0]


COMPOSERS: Dict[MarkupStyle, Callable[[List[ComposedSource], Mapping[str, Optional[str]]], str]] = {
    MarkupStyle.IMG: compose_img,
    MarkupStyle.PICTURE: compose_picture,
    MarkupStyle.PICTUREFILL: compose_picturefill,
}


class ImageTagRenderer(DirectiveRenderer):
    """Runs a directive through parse, resolve, merge, plan and cache, then composes markup."""

    def __init__(
        self,
        config: ImageConfig,
        cache: GenerationCache,
        logger: Optional[LoggerProtocol] = None,
    ):
        self._config = config
        self._cache = cache
        self._logger = logger or StructuredLogger("renderer")

    @property
    def config(self) -> ImageConfig:
        return self._config

    @property
    def keep_files(self) -> List[str]:
        """Output directories the host must not delete."""
        return [self._config.output]

    @with_error_handling
    def render(self, text: str) -> str:
        """Render a directive to markup, raising on any failure."""
        markup, _ = self._render(text, LogContext(component="renderer"))
        return markup

    def process(self, text: str) -> RenderResult:
        """Render a directive, capturing package errors in the result."""
        start_time = time.time()
        context = LogContext(component="renderer").with_metadata(directive=text.strip())
        result = RenderResult(directive=text)
        try:
            result.markup, result.assets = self._render(text, context)
            result.success = True
            result.clamped = any(a.plan is not None and a.plan.was_clamped for a in result.assets)
        except SourceNotFound as e:
            result.error = str(e)
            result.error_type = type(e).__name__
            self._logger.warning(str(e), context)
        except SiteImagesError as e:
            result.error = str(e)
            result.error_type = type(e).__name__
            self._logger.error(f"{type(e).__name__}: {e}", context)
        result.processing_time = time.time() - start_time
        return result

    def _render(self, text: str, context: LogContext) -> Tuple[str, List[GeneratedAsset]]:
        # Everything up to the cache is validation and must not open images.
        directive, preset, attrs = resolve_directive(text, self._config.presets)
        specs = self._source_specs(directive.source_path, directive.source_overrides, preset, context)

        composed: List[ComposedSource] = []
        assets: List[GeneratedAsset] = []
        for name, (src, spec) in specs.items():
            generated = self._cache.generate(
                self._config.source_root,
                src,
                spec.width,
                spec.height,
                context.with_metadata(source=name),
            )
            assets.append(generated)
            url = prefix_baseurl(generated.relative_output_path, self._config.baseurl)
            composed.append(ComposedSource(name=name, src=url, media=spec.media))

        return COMPOSERS[self._config.markup](composed, attrs), assets

    def _source_specs(
        self,
        source_path: str,
        overrides: Mapping[str, str],
        preset: Preset,
        context: LogContext,
    ) -> Dict[str, Tuple[str, SourceSpec]]:
        specs = preset.source_specs()
        for name in overrides:
            if name not in specs:
                self._logger.warning(
                    f"Ignoring {name}: preset '{preset.name}' has no such source", context
                )

        if self._config.markup is MarkupStyle.IMG:
            specs = {DEFAULT_SOURCE_KEY: specs[DEFAULT_SOURCE_KEY]}

        return {
            name: (overrides.get(name, source_path), spec) for name, spec in specs.items()
        }
