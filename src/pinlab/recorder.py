import logging, time
from typing import Callable, List, Optional
from pinlab.timeline import Event, Sequence


def monotonic_ms() -> int: return int(time.monotonic() * 1000)


class ExecutionRecorder:
    """Timestamps pin events from a live run against the session start."""

    def __init__(self, clock: Callable[[], int] = monotonic_ms):
        self.clock = clock; self.events: List[Event] = []; self.started_at: Optional[int] = None
        self.is_recording = False
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def start(self):
        self.events = []; self.started_at = self.clock(); self.is_recording = True
        self._log.debug("Recording started")

    def stop(self): self.is_recording = False

    def elapsed_ms(self) -> int:
        return 0 if self.started_at is None else self.clock() - self.started_at

    def record(self, event: Event) -> Optional[Event]:
        """Re-stamp an event with the elapsed session time and keep it."""
        if not self.is_recording: return None
        stamped = event.shifted(self.elapsed_ms() - event.time)
        self.events.append(stamped)
        self._log.debug("Recorded pin %s -> %s (%s) at %sms", stamped.pin, 'ON' if stamped.is_on else 'OFF',
                        stamped.kind.value, stamped.time)
        return stamped

    def build_sequence(self) -> Sequence:
        if not self.events:
            return Sequence()
        ordered = tuple(sorted(self.events, key=lambda e: e.time))
        return Sequence(events=ordered, total_duration_ms=ordered[-1].time, is_looping=False)

    def clear(self): self.events = []; self.started_at = None
