"""
Integrity Monitor - strike-based lockout for official sessions.

Counts every "surface hidden" and "surface lost focus" signal as one strike.
The two sources are not deduplicated: an application switch usually fires both
and therefore costs two strikes.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

try:
    from ..config import config
    from ..utils.attention import AttentionSignal, AttentionSource
except ImportError:
    from src.config import config
    from src.utils.attention import AttentionSignal, AttentionSource

logger = logging.getLogger(__name__)

STRIKE_SIGNALS = frozenset({AttentionSignal.HIDDEN, AttentionSignal.BLUR})


class IntegrityMonitor:
    """
    Observes an attention source and enforces the strike threshold.

    The counter only grows. When it reaches the threshold the monitor detaches
    itself and invokes ``on_lockout(strikes)`` exactly once.
    """

    def __init__(
        self,
        source: AttentionSource,
        on_lockout: Optional[Callable[[int], None]] = None,
        threshold: Optional[int] = None,
    ):
        """
        Initialize monitor (detached).

        Args:
            source: Attention source to subscribe to
            on_lockout: Called with the strike count when the threshold is reached
            threshold: Strike threshold (default: config.integrity.strike_threshold)
        """
        self.source = source
        self.on_lockout = on_lockout
        self.threshold = threshold if threshold is not None else config.integrity.strike_threshold
        if self.threshold < 1:
            raise ValueError(f"Strike threshold must be >= 1, got {self.threshold}")

        self._strikes = 0
        self._attached = False
        self._locked_out = False

    @property
    def strikes(self) -> int:
        return self._strikes

    @property
    def is_attached(self) -> bool:
        return self._attached

    @property
    def locked_out(self) -> bool:
        return self._locked_out

    @property
    def remaining(self) -> int:
        """Strikes left before lockout."""
        return max(0, self.threshold - self._strikes)

    def attach(self) -> None:
        """Start listening. No-op when already attached or after lockout."""
        if self._attached or self._locked_out:
            return
        self.source.subscribe(self._on_signal)
        self._attached = True
        logger.debug("Integrity monitor attached (threshold=%d)", self.threshold)

    def detach(self) -> None:
        """Stop listening. Safe to call repeatedly."""
        if not self._attached:
            return
        self.source.unsubscribe(self._on_signal)
        self._attached = False
        logger.debug("Integrity monitor detached at %d strike(s)", self._strikes)

    def _on_signal(self, signal: AttentionSignal) -> None:
        if not self._attached or self._locked_out:
            return
        if signal not in STRIKE_SIGNALS:
            return

        self._strikes += 1
        logger.warning(
            "Integrity strike %d/%d (%s)", self._strikes, self.threshold, signal.value
        )

        if self._strikes >= self.threshold:
            self._locked_out = True
            self.detach()
            logger.warning("Strike threshold reached, forcing lockout")
            if self.on_lockout is not None:
                self.on_lockout(self._strikes)
