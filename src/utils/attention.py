"""
Surface-attention signals.

The assessment surface (browser tab, kiosk window, desktop client) reports when
it is hidden or loses input focus. Sessions receive these signals through an
injected source so that the integrity monitor never touches a live UI runtime.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List

logger = logging.getLogger(__name__)


class AttentionSignal(str, Enum):
    """Visibility / focus changes reported by the assessment surface."""

    HIDDEN = "hidden"    # tab or application switched away
    VISIBLE = "visible"
    BLUR = "blur"        # window lost input focus
    FOCUS = "focus"


AttentionHandler = Callable[[AttentionSignal], None]


class AttentionSource:
    """
    Subscription capability for attention signals.

    Implementations deliver every signal to the handlers subscribed at the time
    the signal fires, in subscription order.
    """

    def subscribe(self, handler: AttentionHandler) -> None:
        raise NotImplementedError

    def unsubscribe(self, handler: AttentionHandler) -> None:
        raise NotImplementedError


class ScriptedAttentionSource(AttentionSource):
    """
    In-process attention source.

    Used by tests and by front-ends that forward surface events (for example a
    websocket handler calling ``emit`` for each ``visibilitychange``/``blur``).
    Delivery is synchronous.
    """

    def __init__(self):
        self._handlers: List[AttentionHandler] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def subscribe(self, handler: AttentionHandler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def unsubscribe(self, handler: AttentionHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def emit(self, signal: AttentionSignal) -> None:
        """Deliver a signal to the current subscribers."""
        signal = AttentionSignal(signal)
        logger.debug("Attention signal %s -> %d subscriber(s)", signal.value, len(self._handlers))
        # Handlers may unsubscribe while being called
        for handler in list(self._handlers):
            handler(signal)

    def switch_away(self) -> None:
        """Simulate an application switch: the surface is hidden and loses focus."""
        self.emit(AttentionSignal.HIDDEN)
        self.emit(AttentionSignal.BLUR)
