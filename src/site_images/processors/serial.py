"""Serial processor implementation - renders directives one by one."""

from typing import List

from ..core import RenderResult
from ..core.protocols import DirectiveRenderer
from .common import render_batch


def process_batch(directives: List[str], renderer: DirectiveRenderer) -> List[RenderResult]:
    """
    Renders a batch of directives serially, in the current thread.

    Args:
        directives: Directive strings to render.
        renderer: Renderer used for each directive.

    Returns:
        A list of `RenderResult` objects in input order.
    """
    with render_batch("Serial render", directives) as batch:
        for directive in directives:
            batch.record(renderer.process(directive))
    return batch.results
