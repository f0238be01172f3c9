"""
Observer table for handle notifications.

Maps event names to a single observer each and dispatches in a thread-safe
manner.
"""

import logging
import threading
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

# Type alias for observers, called with the decoded notification values
Observer = Callable[..., None]


class SignalDispatcher:
    """
    Dispatches notifications to observers registered per event.

    Only one observer per event is kept; registering again replaces the
    previous observer.

    Features:
    - Thread-safe registration
    - Observers are called outside the lock
    - Error handling for misbehaving observers
    """

    def __init__(self, owner: str = "") -> None:
        """
        Initialize dispatcher.

        Args:
            owner: Name used in log messages (usually an object path)
        """
        self.owner = owner

        # Observer registry: event -> observer
        self._observers: Dict[str, Observer] = {}

        self._lock = threading.Lock()

    def register(self, event: str, observer: Observer) -> None:
        """
        Register the observer for an event, replacing any previous one.

        Args:
            event: Event name (e.g. "state", "signal")
            observer: Function to call when the event fires

        Example:

        .. code-block:: python

            dispatcher.register("state", lambda old, new: print(old, "->", new))
        """
        with self._lock:
            replaced = event in self._observers
            self._observers[event] = observer

        if replaced:
            logger.info(f"Replaced '{event}' observer of {self.owner}")
        else:
            logger.info(f"Registered '{event}' observer of {self.owner}")

    def unregister(self, event: str) -> bool:
        """
        Remove the observer of an event.

        Returns:
            True if an observer was removed, False if none was registered
        """
        with self._lock:
            if event in self._observers:
                del self._observers[event]
                logger.info(f"Unregistered '{event}' observer of {self.owner}")
                return True
            return False

    def clear(self) -> None:
        """Remove all observers."""
        with self._lock:
            count = len(self._observers)
            self._observers.clear()
        logger.info(f"Cleared {count} observers of {self.owner}")

    def has_observer(self, event: str) -> bool:
        with self._lock:
            return event in self._observers

    def get_observers(self) -> Dict[str, Observer]:
        """
        Get registered observers (for debugging).

        Returns:
            Dictionary mapping events to observers
        """
        with self._lock:
            return dict(self._observers)

    def dispatch(self, event: str, *args: Any) -> bool:
        """
        Call the observer of an event.

        Observer exceptions are logged and not propagated.

        Args:
            event: Event name
            *args: Values passed to the observer

        Returns:
            True if an observer was called
        """
        with self._lock:
            observer: Optional[Observer] = self._observers.get(event)

        if observer is None:
            logger.debug(f"No '{event}' observer on {self.owner}")
            return False

        try:
            observer(*args)
            logger.debug(f"'{event}' observer of {self.owner} executed successfully")
        except Exception as e:
            logger.error(f"'{event}' observer of {self.owner} failed: {e}", exc_info=True)
        return True
