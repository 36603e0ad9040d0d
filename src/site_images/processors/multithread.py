"""Multithreaded processor implementation - uses a thread pool for parallelism."""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from ..core import RenderResult
from ..core.protocols import DirectiveRenderer
from .common import render_batch

DEFAULT_MAX_WORKERS = 8


def process_batch(
    directives: List[str],
    renderer: DirectiveRenderer,
    max_workers: Optional[int] = None,
) -> List[RenderResult]:
    """
    Render a batch of directives on a thread pool.

    Directives only share the output directory, and the generation cache
    serializes work on the same output file.

    Args:
        directives: Directive strings to render
        renderer: Renderer used for each directive
        max_workers: Thread count (defaults to min(8, batch size))

    Returns:
        List of render results in input order
    """
    if not directives:
        return []
    workers = max_workers or min(DEFAULT_MAX_WORKERS, len(directives))

    with render_batch("Multithreaded render", directives) as batch:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(renderer.process, d) for d in directives]
            for directive, future in zip(directives, futures):
                try:
                    batch.record(future.result())
                except Exception as e:
                    # process() only captures package errors
                    batch.record(
                        RenderResult(
                            directive=directive,
                            error=str(e),
                            error_type=type(e).__name__,
                        )
                    )
    return batch.results
