"""
Lightweight Event System for Extensibility

Provides a simple event emitter pattern for hooks (notifications, badges,
feed posts) that react to training-core outcomes without the core knowing
about them.
"""
import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

# Event registry: event_name -> list of handlers
_event_handlers: Dict[str, List[Callable]] = {}


def subscribe(event_name: str, handler: Callable):
    """
    Subscribe a handler function to an event.

    Args:
        event_name: Name of the event (e.g., 'drill.completed')
        handler: Function to call when event fires

    Example:
        def on_drill_completed(athlete_id: str, detection_count: int, **_):
            ...

        subscribe(EVENT_DRILL_COMPLETED, on_drill_completed)
    """
    _event_handlers.setdefault(event_name, []).append(handler)
    logger.debug(f"Subscribed handler to event: {event_name}")


def unsubscribe(event_name: str, handler: Callable):
    """Remove a previously subscribed handler (no-op if absent)."""
    handlers = _event_handlers.get(event_name, [])
    if handler in handlers:
        handlers.remove(handler)


def emit(event_name: str, **kwargs):
    """
    Emit an event, calling all subscribed handlers.

    Handler failures are logged and never propagate to the emitter.

    Example:
        emit(EVENT_STREAK_CHECKED_IN, athlete_id="u1", outcome="extended", current_streak=6)
    """
    for handler in list(_event_handlers.get(event_name, [])):
        try:
            handler(**kwargs)
        except Exception as e:
            logger.error(f"Error in event handler for {event_name}: {e}", exc_info=True)


# Common event names
EVENT_DRILL_COMPLETED = 'drill.completed'
EVENT_STREAK_CHECKED_IN = 'streak.checked_in'
EVENT_STREAK_MILESTONE = 'streak.milestone'
