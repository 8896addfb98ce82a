"""Synchronous publish/subscribe of pool state changes.

``PoolEngine`` publishes a ``PoolEvent`` after every committed mutation so
charts and other observers can refresh without polling. Callbacks run in
subscription order on the committing thread.
"""

import logging
from collections.abc import Callable

from prediction_amm.core.models import PoolEvent
from prediction_amm.core.protocols import PoolObserver

logger = logging.getLogger(__name__)


class PoolEventBus:
    """Ordered list of observer callbacks.

    An observer that raises is logged with its traceback; the remaining
    observers still run and the commit that triggered the event stands.
    """

    def __init__(self) -> None:
        """Initialize with no observers."""
        self._observers: list[PoolObserver] = []

    def __len__(self) -> int:
        """Return the number of subscribed observers."""
        return len(self._observers)

    def subscribe(self, observer: PoolObserver) -> Callable[[], None]:
        """Register an observer.

        Args:
            observer: Callable invoked with each ``PoolEvent``.

        Returns:
            A function that removes this subscription. Calling it twice is
            harmless.

        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def publish(self, event: PoolEvent) -> None:
        """Deliver an event to every observer in subscription order."""
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception:
                logger.warning(
                    "Observer %r failed on %s event for %s",
                    observer,
                    event.kind.value,
                    event.pool_id,
                    exc_info=True,
                )
