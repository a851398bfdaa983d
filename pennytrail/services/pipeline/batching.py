import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass
class BatchOutcome:
    item: Any
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_in_batches(
    items: Sequence,
    operation: Callable[[Any], Awaitable],
    batch_size: int,
    pause: float = 0.0,
) -> List[BatchOutcome]:
    """
    Run ``operation`` over ``items`` in fixed-size groups.

    Every operation in a group is awaited before the next group starts, with
    ``pause`` seconds between groups. A failing item never cancels its
    siblings; its exception is kept on the outcome. Outcomes follow input order.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    items = list(items)
    outcomes: List[BatchOutcome] = []

    for start in range(0, len(items), batch_size):
        group = items[start:start + batch_size]
        results = await asyncio.gather(*(operation(item) for item in group), return_exceptions=True)

        for offset, (item, result) in enumerate(zip(group, results)):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.error(f"Batch item {start + offset} failed: {result}")
                outcomes.append(BatchOutcome(item=item, error=result))
            else:
                outcomes.append(BatchOutcome(item=item, value=result))

        if pause and start + batch_size < len(items):
            await asyncio.sleep(pause)

    return outcomes
