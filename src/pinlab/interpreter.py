from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from pinlab.config import Limits
from pinlab.logging_config import sketch_extra
from pinlab.errors import (InvalidDirectionOrValue, InvalidPinNumber, UndeclaredPinUsage,
                           UninitializedTimer, UnsupportedLegacyStatement)
from pinlab.pins import Direction, PinBoard, percent_to_pwm, round_half_up
from pinlab.statements import (AnalogWrite, Conditional, DigitalWrite, PinMode, SetDutyCycle, Statement,
                               Timer, TimerInitialize, TimerPwm, TimerStop, Wait, parse_statement)


@dataclass
class TimerState:
    initialized: bool = False
    period_us: Optional[int] = None


class StatementInterpreter:
    """
    Applies one statement at a time to a PinBoard.

    The interpreter never sleeps and knows nothing about time: a Wait is only
    range-checked here and handed back to whichever driver called it (the
    timeline extractor advances a virtual clock, the live runner blocks).
    """

    def __init__(self, board: PinBoard, limits: Optional[Limits] = None):
        self.board = board
        self.limits = limits or Limits()
        self.timers: Dict[Timer, TimerState] = {t: TimerState() for t in Timer}
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._handlers: Dict[type, Callable] = {
            PinMode: self._pin_mode, DigitalWrite: self._digital_write, SetDutyCycle: self._set_duty_cycle,
            AnalogWrite: self._analog_write, TimerInitialize: self._timer_initialize, TimerPwm: self._timer_pwm,
            TimerStop: self._timer_stop, Wait: self._wait, Conditional: self._conditional,
        }

    def reset(self):
        self.board.reset()
        self.timers = {t: TimerState() for t in Timer}

    def execute_line(self, line: str, line_number: int = 0) -> Optional[Statement]:
        stmt = parse_statement(line, line_number)
        if stmt is not None:
            self.execute(stmt)
        return stmt

    def execute(self, stmt: Statement) -> Statement:
        self._handlers[type(stmt)](stmt)
        return stmt

    # ---------- Checks ----------

    def _check_pin(self, pin: int, ln: int):
        if not self.board.is_usable(pin):
            rng = self.board.pin_range_text()
            raise InvalidPinNumber(f"Pin {pin} is not available.", ln, f"Use pins {rng}.")

    def _require_output(self, pin: int, op: str, ln: int):
        if self.board[pin].direction is not Direction.OUTPUT:
            raise UndeclaredPinUsage(f"Pin {pin} must be set to OUTPUT mode before using {op}().", ln,
                                     f"Add: pinMode({pin}, OUTPUT);")

    # ---------- Handlers ----------

    def _pin_mode(self, s: PinMode):
        self._check_pin(s.pin, s.line_number)
        if s.mode not in ("INPUT", "OUTPUT"):
            raise InvalidDirectionOrValue(f'Invalid mode "{s.mode}".', s.line_number, "Use INPUT or OUTPUT.")
        self.board[s.pin].direction = Direction(s.mode)
        self._log.debug("Pin %s set to %s", s.pin, s.mode)

    def _digital_write(self, s: DigitalWrite):
        self._check_pin(s.pin, s.line_number)
        if s.level not in ("HIGH", "LOW"):
            raise InvalidDirectionOrValue(f'Invalid value "{s.level}".', s.line_number, "Use HIGH or LOW.")
        self._require_output(s.pin, "digitalWrite", s.line_number)
        self.board[s.pin].digital_level = s.level == "HIGH"

    def _set_duty_cycle(self, s: SetDutyCycle):
        self._check_pin(s.pin, s.line_number)
        if not 0 <= s.percent <= self.limits.max_duty_percent:
            raise InvalidDirectionOrValue(f'Invalid duty cycle "{s.percent}".', s.line_number,
                                          f"Use values 0-{self.limits.max_duty_percent}.")
        self._require_output(s.pin, "setDutyCycle", s.line_number)
        self.board[s.pin].set_pwm(percent_to_pwm(s.percent), s.percent)

    def _analog_write(self, s: AnalogWrite):
        raise UnsupportedLegacyStatement(
            "analogWrite() is not supported.", s.line_number,
            f"Use setDutyCycle(pin, dutyCycle) instead, where dutyCycle is 0-100%. Example: setDutyCycle({s.pin}, 50);")

    def _timer_initialize(self, s: TimerInitialize):
        lo, hi = self.limits.timer1_period_min_us, self.limits.timer1_period_max_us
        if s.timer is Timer.TIMER1 and s.period_us is not None and not lo <= s.period_us <= hi:
            self._log.warning("Timer1 period %sus is not optimal for 50Hz. Recommended: 20000us", s.period_us,
                              extra=sketch_extra(s.line_number))
        self.timers[s.timer] = TimerState(initialized=True, period_us=s.period_us)

    def _timer_pwm(self, s: TimerPwm):
        t = s.timer
        if not self.timers[t].initialized:
            hint = f"Add: {t.label}.initialize(20000);" if t is Timer.TIMER1 else f"Add: {t.label}.initialize();"
            raise UninitializedTimer(f"{t.label} must be initialized first.", s.line_number, hint)
        self._check_pin(s.pin, s.line_number)
        if not 0 <= s.duty <= t.raw_max:
            raise InvalidDirectionOrValue(f"Duty cycle {s.duty} invalid.", s.line_number, f"Use 0-{t.raw_max}.")
        self._require_output(s.pin, f"{t.label}.pwm", s.line_number)
        pwm = round_half_up(s.duty / t.raw_max * 255)
        self.board[s.pin].set_pwm(pwm, round_half_up(s.duty / t.raw_max * 100))

    def _timer_stop(self, s: TimerStop):
        self.timers[s.timer] = TimerState()

    def _wait(self, s: Wait):
        if not 0 <= s.ms <= self.limits.max_wait_ms:
            raise InvalidDirectionOrValue(f'Invalid delay value "{s.ms}".', s.line_number,
                                          f"Use values 0-{self.limits.max_wait_ms}ms.")

    def _conditional(self, s: Conditional):
        pass
