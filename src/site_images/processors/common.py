"""Common helpers shared across processor implementations."""

from contextlib import contextmanager
from typing import Iterator, List

from ..core import RenderResult, get_logger
from ..core.error_handling import BatchOperationContextManager


class BatchRecorder:
    """Collects results for a batch and reports failures to the error collector."""

    def __init__(self, errors: BatchOperationContextManager):
        self.results: List[RenderResult] = []
        self._errors = errors

    def record(self, result: RenderResult) -> None:
        self.results.append(result)
        if not result.success:
            self._errors.add_error(
                f"{result.error_type}: {result.error}", result.directive.strip()
            )


@contextmanager
def render_batch(name: str, directives: List[str]) -> Iterator[BatchRecorder]:
    """Log a batch's progress and summarize its per-directive errors."""
    logger = get_logger("processor")
    logger.debug(f"{name}: {len(directives)} directive(s)")
    with BatchOperationContextManager(name) as errors:
        recorder = BatchRecorder(errors)
        yield recorder
    generated = sum(1 for r in recorder.results for a in r.assets if a.generated)
    logger.info(
        f"{name}: {len(recorder.results)} rendered, {len(errors.errors)} failed, "
        f"{generated} image(s) generated"
    )


def summarize(results: List[RenderResult]) -> dict:
    """Counts used by the CLI summary line."""
    return {
        "total_items": len(results),
        "rendered_count": sum(1 for r in results if r.success),
        "error_count": sum(1 for r in results if not r.success),
        "generated_count": sum(1 for r in results for a in r.assets if a.generated),
        "clamped_count": sum(1 for r in results if r.clamped),
        "processing_time": sum(r.processing_time for r in results),
    }
