"""
Synchronous event bus shared by the core components.

Callbacks are invoked in subscription order, on the caller's thread,
before emit() returns. A failing callback is logged and skipped so a
broken listener can never interrupt a timer tick or a reward update.
"""

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class EventBus:
    """Typed event stream: event name -> ordered list of callbacks."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Callable[..., None]]] = {}

    def subscribe(self, event_type: str, callback: Callable[..., None]) -> None:
        """
        Register a callback for an event type.

        Args:
            event_type: One of the config.EVENT_* names.
            callback: Called with the event payload as positional arguments.
        """
        self._subscribers.setdefault(event_type, []).append(callback)

    def unsubscribe(self, event_type: str, callback: Callable[..., None]) -> None:
        """Remove a previously registered callback (no-op if absent)."""
        callbacks = self._subscribers.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def emit(self, event_type: str, *payload: Any) -> None:
        """Deliver an event to every subscriber of its type."""
        for callback in list(self._subscribers.get(event_type, [])):
            try:
                callback(*payload)
            except Exception as e:
                logger.error(f"{event_type} callback error: {e}", exc_info=True)

    def subscriber_count(self, event_type: str) -> int:
        return len(self._subscribers.get(event_type, []))
