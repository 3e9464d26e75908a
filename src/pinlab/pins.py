from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable


class Direction(str, Enum):
    UNSET = "UNSET"; INPUT = "INPUT"; OUTPUT = "OUTPUT"


def round_half_up(x: float) -> int:
    return int(x + 0.5) if x >= 0 else -int(-x + 0.5)


def pwm_to_percent(pwm: int) -> int: return round_half_up(pwm / 255 * 100)
def percent_to_pwm(percent: float) -> int: return round_half_up(percent / 100 * 255)


@dataclass
class PinState:
    direction: Direction = Direction.UNSET
    digital_level: bool = False
    pwm_value: int = 0
    duty_cycle_percent: int = 0

    @property
    def is_on(self) -> bool:
        # any PWM output counts as on, whatever the digital level says
        return self.pwm_value > 0 or self.digital_level

    def set_pwm(self, pwm: int, percent: int | None = None):
        self.pwm_value = max(0, min(255, pwm))
        self.duty_cycle_percent = pwm_to_percent(self.pwm_value) if percent is None else percent


class PinBoard:
    """Per-pin mode/value state for one interpretation pass."""

    def __init__(self, usable_pins: Iterable[int]):
        self.usable_pins = tuple(sorted(set(usable_pins)))
        self._pins: Dict[int, PinState] = {}
        self.reset()

    def reset(self):
        self._pins = {p: PinState() for p in self.usable_pins}

    def is_usable(self, pin: int) -> bool: return pin in self._pins
    def __getitem__(self, pin: int) -> PinState: return self._pins[pin]
    def __iter__(self): return iter(self.usable_pins)

    def pin_range_text(self) -> str:
        lo, hi = self.usable_pins[0], self.usable_pins[-1]
        if list(self.usable_pins) == list(range(lo, hi + 1)):
            return f"{lo}-{hi}"
        return ", ".join(str(p) for p in self.usable_pins)
