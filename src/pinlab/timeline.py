from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple
import os, yaml

from pinlab.pins import PinBoard
from pinlab.statements import DigitalWrite, Statement


class EventKind(str, Enum):
    DIGITAL = 'digital'; PWM = 'pwm'


class Body(str, Enum):
    INIT = 'setup'; MAIN = 'loop'


@dataclass(frozen=True)
class Event:
    time: int            # ms since the start of the timeline
    pin: int
    is_on: bool
    kind: EventKind
    origin: Body
    duty_cycle_percent: Optional[int] = None

    def shifted(self, offset: int) -> 'Event':
        return Event(self.time + offset, self.pin, self.is_on, self.kind, self.origin, self.duty_cycle_percent)

    def to_dict(self) -> Dict[str, Any]:
        return {'time': self.time, 'pin': self.pin, 'is_on': self.is_on, 'kind': self.kind.value,
                'origin': self.origin.value, 'duty_cycle_percent': self.duty_cycle_percent}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Event':
        duty = d.get('duty_cycle_percent')
        return cls(time=int(d['time']), pin=int(d['pin']), is_on=bool(d['is_on']), kind=EventKind(d['kind']),
                   origin=Body(d.get('origin', Body.MAIN.value)), duty_cycle_percent=None if duty is None else int(duty))


@dataclass(frozen=True)
class Sequence:
    events: Tuple[Event, ...] = field(default_factory=tuple)
    total_duration_ms: int = 0
    is_looping: bool = False

    def __len__(self) -> int: return len(self.events)

    def to_dict(self) -> Dict[str, Any]:
        return {'events': [e.to_dict() for e in self.events], 'total_duration_ms': self.total_duration_ms,
                'is_looping': self.is_looping}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Sequence':
        return cls(events=tuple(Event.from_dict(e) for e in d.get('events') or []),
                   total_duration_ms=int(d.get('total_duration_ms', 0)), is_looping=bool(d.get('is_looping', False)))


def event_kind(stmt: Statement) -> EventKind:
    return EventKind.DIGITAL if isinstance(stmt, DigitalWrite) else EventKind.PWM


class EmissionTracker:
    """
    Remembers the last emitted pin state per pin so that only real changes
    become events. The state is read off the board, not the statement: a
    digitalWrite(HIGH) on a pin already driven by PWM changes nothing.
    Starts empty: the first write to a pin always emits.
    """

    def __init__(self): self._last: Dict[int, Tuple[bool, Optional[int]]] = {}

    def observe(self, board: PinBoard, pin: int, kind: EventKind, origin: Body, time_ms: int) -> Optional[Event]:
        st = board[pin]
        key = (st.is_on, st.duty_cycle_percent if st.pwm_value > 0 else None)
        if self._last.get(pin) == key:
            return None
        self._last[pin] = key
        duty = st.duty_cycle_percent if kind is EventKind.PWM else None
        return Event(time=time_ms, pin=pin, is_on=st.is_on, kind=kind, origin=origin, duty_cycle_percent=duty)


def load_sequence(path: str) -> Sequence:
    with open(path, 'r') as f:
        return Sequence.from_dict(yaml.safe_load(f) or {})


def save_sequence(path: str, seq: Sequence) -> None:
    if os.path.dirname(path):
        os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w') as f:
        yaml.safe_dump(seq.to_dict(), f, sort_keys=False)
