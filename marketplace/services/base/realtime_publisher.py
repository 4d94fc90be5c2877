"""
Realtime push contract.

The booking core only pushes best-effort events to a user's live
connections; the connection layer itself lives outside this package.
"""

from typing import Any, Dict

from marketplace.core.logging import get_logger


class RealtimePublisher:
    """Push an event to a user's live connections."""

    def publish(self, user_id: str, event: Dict[str, Any]) -> None:
        raise NotImplementedError


class NullRealtimePublisher(RealtimePublisher):
    """Publisher used when no live connection layer is wired in."""

    def __init__(self):
        self._logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    def publish(self, user_id: str, event: Dict[str, Any]) -> None:
        self._logger.debug(
            "Realtime event dropped: no publisher configured",
            extra={"event_type": event.get("type")},
        )
