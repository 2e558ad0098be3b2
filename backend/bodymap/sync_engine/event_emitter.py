"""Event emitter for occurrence observers."""

import logging
from typing import Callable, List

from bodymap.sync_engine.models import Occurrence, redact

logger = logging.getLogger(__name__)


class OccurrenceEmitter:
    """Broadcasts every occurrence the engine records to its listeners.

    Listeners observe; they cannot influence matching. A listener that raises
    is logged and skipped so one faulty observer cannot break a cycle.
    """

    def __init__(self) -> None:
        """Initialize an empty list of listeners."""
        self._listeners: List[Callable[[Occurrence], None]] = []

    def subscribe(self, listener: Callable[[Occurrence], None]) -> None:
        """Subscribe a listener to occurrences.

        Args:
            listener: A callable that accepts an Occurrence.

        Raises:
            ValueError: If the listener is already subscribed.
        """
        if listener in self._listeners:
            raise ValueError("Listener is already subscribed")
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[Occurrence], None]) -> None:
        """Unsubscribe a listener.

        Raises:
            ValueError: If the listener is not subscribed.
        """
        try:
            self._listeners.remove(listener)
        except ValueError:
            raise ValueError("Listener is not subscribed") from None

    def emit(self, occurrence: Occurrence) -> None:
        """Emit an occurrence to all subscribed listeners."""
        for listener in list(self._listeners):
            try:
                listener(occurrence)
            except Exception:
                logger.exception(f"Occurrence listener {listener!r} raised")


def log_occurrence(occurrence: Occurrence) -> None:
    """Listener that logs every occurrence at debug level."""
    logger.debug(
        f"[gen {occurrence.generation}] {occurrence.module}.{occurrence.operation}"
        f" {redact(occurrence.inputs)} -> {redact(occurrence.outputs)}"
        + (f" (via {occurrence.cause})" if occurrence.cause else "")
    )
