"""Streaming response aggregation.

Backends stream a completion as a finite, in-order sequence of text
fragments. The aggregator joins them into the final output text.
"""

from typing import AsyncIterator, Callable

from ..logging import get_logger

logger = get_logger(__name__)


class StreamAggregator:
    """Collects streamed text fragments into a single string.

    Fragments are concatenated verbatim in arrival order; nothing is trimmed,
    deduplicated or reordered. If the stream fails midway the partial text is
    discarded and the error is raised to the caller.
    """

    def __init__(self, on_fragment: Callable[[str, int], None] | None = None):
        """Initialize the aggregator.

        Args:
            on_fragment: Optional callback invoked after each fragment with
                the fragment and the number of fragments received so far.
        """
        self.on_fragment = on_fragment

    async def aggregate(self, fragments: AsyncIterator[str]) -> str:
        """Consume a fragment stream and return the joined text.

        Args:
            fragments: Async iterator of text fragments.

        Returns:
            The concatenation of every fragment, in order.
        """
        parts: list[str] = []
        try:
            async for fragment in fragments:
                if fragment is None:
                    continue
                parts.append(fragment)
                if self.on_fragment:
                    self.on_fragment(fragment, len(parts))
        except Exception:
            logger.warning(f"stream failed after {len(parts)} fragments; discarding partial output")
            raise

        logger.debug(f"stream finished with {len(parts)} fragments")
        return "".join(parts)
