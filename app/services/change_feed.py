"""
SGI Compliance Tracker - Change Feed

Subscription registry delivering full-collection snapshots. Every
subscriber receives the current snapshot when it subscribes and again
after each mutation of the collection; there is no incremental diff.
"""

import inspect
import itertools
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

SnapshotLoader = Callable[[], Awaitable[List[Any]]]
DataCallback = Callable[[List[Any]], Any]
ErrorCallback = Callable[[Exception], Any]


async def _invoke(callback: Callable, *args) -> None:
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class ChangeFeed:
    """Full-snapshot publisher for one collection."""

    def __init__(self, name: str, loader: SnapshotLoader):
        self.name = name
        self._loader = loader
        self._subscribers: Dict[int, Tuple[DataCallback, Optional[ErrorCallback]]] = {}
        self._ids = itertools.count(1)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def subscribe(
        self,
        on_data: DataCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Callable[[], None]:
        """
        Register callbacks and deliver the initial snapshot.

        Returns:
            A callable that removes the subscription (idempotent).
        """
        token = next(self._ids)
        self._subscribers[token] = (on_data, on_error)
        logger.debug(f"{self.name}: subscriber {token} added ({self.subscriber_count} active)")

        def unsubscribe() -> None:
            if self._subscribers.pop(token, None) is not None:
                logger.debug(f"{self.name}: subscriber {token} removed")

        await self._deliver(token, on_data, on_error)
        return unsubscribe

    async def publish(self) -> None:
        """Reload the collection and push it to every subscriber."""
        if not self._subscribers:
            return
        try:
            snapshot = await self._loader()
        except Exception as exc:
            logger.error(f"{self.name}: snapshot reload failed: {exc}")
            for _, on_error in list(self._subscribers.values()):
                if on_error is not None:
                    await self._safe_invoke(on_error, exc)
            return
        for on_data, on_error in list(self._subscribers.values()):
            await self._safe_invoke(on_data, snapshot, on_error)

    async def _deliver(self, token: int, on_data: DataCallback, on_error: Optional[ErrorCallback]) -> None:
        try:
            snapshot = await self._loader()
        except Exception as exc:
            logger.error(f"{self.name}: initial snapshot failed for subscriber {token}: {exc}")
            if on_error is None:
                raise
            await _invoke(on_error, exc)
            return
        await _invoke(on_data, snapshot)

    async def _safe_invoke(self, callback: Callable, payload: Any, on_error: Optional[ErrorCallback] = None) -> None:
        # A failing subscriber must not stop delivery to the others
        try:
            await _invoke(callback, payload)
        except Exception as exc:
            logger.warning(f"{self.name}: subscriber callback failed: {exc}")
            if on_error is not None and callback is not on_error:
                try:
                    await _invoke(on_error, exc)
                except Exception as nested:
                    logger.warning(f"{self.name}: error callback failed: {nested}")
