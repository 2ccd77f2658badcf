from __future__ import annotations

from typing import List

from .fifo_domain import ShortfallEvent


class EventRecorder:
    """Collect shortfall events without side effects."""

    def __init__(self) -> None:
        self._shortfall_events: List[ShortfallEvent] = []

    def record_shortfall(self, event: ShortfallEvent) -> None:
        self._shortfall_events.append(event)

    @property
    def shortfall_events(self) -> list[ShortfallEvent]:
        return self._shortfall_events

    @property
    def messages(self) -> list[str]:
        return [e.message for e in self._shortfall_events]
