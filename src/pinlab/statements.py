"""
Statement grammar for the sketch dialect.

One statement per line. A line is tokenised into names (optionally dotted,
e.g. ``Timer1.pwm``), integers and punctuation, then matched against a fixed
call table. The result is one of the frozen dataclasses below; anything that
does not fit becomes an ``UnrecognizedStatement`` error.

    pinMode(13, OUTPUT);       -> PinMode(pin=13, mode="OUTPUT")
    digitalWrite(13, HIGH);    -> DigitalWrite(pin=13, level="HIGH")
    setDutyCycle(9, 50);       -> SetDutyCycle(pin=9, percent=50)
    Timer1.pwm(9, 512);        -> TimerPwm(timer=Timer.TIMER1, pin=9, duty=512)
    delay(1000);               -> Wait(ms=1000)
    if (x) {   /   } else {    -> Conditional(text=...)
"""
from __future__ import annotations
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

from pinlab.errors import InvalidDirectionOrValue, InvalidPinNumber, UnrecognizedStatement

SUPPORTED = ("pinMode, digitalWrite, setDutyCycle, delay, Timer1.initialize, Timer1.pwm, "
             "Timer1.stop, Timer0.initialize, Timer0.pwm, Timer0.stop, if/else statements")


class Timer(Enum):
    TIMER1 = ("Timer1", "TimerOne.h", 1023)
    TIMER0 = ("Timer0", "TimerZero.h", 255)

    def __init__(self, label: str, header: str, raw_max: int):
        self.label = label; self.header = header; self.raw_max = raw_max

    @property
    def include_line(self) -> str: return f"#include <{self.header}>"


@dataclass(frozen=True)
class PinMode:
    pin: int; mode: str
    line_number: int = field(default=0, compare=False)

@dataclass(frozen=True)
class DigitalWrite:
    pin: int; level: str
    line_number: int = field(default=0, compare=False)

@dataclass(frozen=True)
class SetDutyCycle:
    pin: int; percent: int
    line_number: int = field(default=0, compare=False)

@dataclass(frozen=True)
class AnalogWrite:
    pin: int; value: int
    line_number: int = field(default=0, compare=False)

@dataclass(frozen=True)
class TimerInitialize:
    timer: Timer; period_us: Optional[int] = None
    line_number: int = field(default=0, compare=False)

@dataclass(frozen=True)
class TimerPwm:
    timer: Timer; pin: int; duty: int
    line_number: int = field(default=0, compare=False)

@dataclass(frozen=True)
class TimerStop:
    timer: Timer
    line_number: int = field(default=0, compare=False)

@dataclass(frozen=True)
class Wait:
    ms: int
    line_number: int = field(default=0, compare=False)

@dataclass(frozen=True)
class Conditional:
    text: str
    line_number: int = field(default=0, compare=False)


Statement = Union[PinMode, DigitalWrite, SetDutyCycle, AnalogWrite, TimerInitialize,
                  TimerPwm, TimerStop, Wait, Conditional]
WRITE_STATEMENTS = (DigitalWrite, SetDutyCycle, TimerPwm)

# ---------- Tokenising ----------

_TOKEN = re.compile(r"\s*(?:(?P<num>[-+]?\d+)|(?P<name>[A-Za-z_]\w*(?:\.[A-Za-z_]\w*)?)|(?P<punct>[(),;]))")
_IF = re.compile(r"^(?:\}\s*)?(?:else\s+)?if\s*\(.*\)\s*\{?$", re.IGNORECASE)
_ELSE = re.compile(r"^(?:\}\s*)?else\s*\{?$", re.IGNORECASE)
_BRACE = re.compile(r"^[{}]\s*;?$")

Token = Tuple[str, str]


def strip_line_comment(line: str) -> str:
    """Drop a trailing // comment that is not inside a string literal."""
    quote = None
    for i, ch in enumerate(line):
        if quote:
            if ch == quote and line[i - 1] != "\\": quote = None
        elif ch in "\"'":
            quote = ch
        elif ch == "/" and line[i + 1:i + 2] == "/":
            return line[:i]
    return line


def tokenize(text: str) -> Optional[List[Token]]:
    tokens: List[Token] = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        m = _TOKEN.match(text, pos)
        if not m or m.end() == pos:
            return None
        kind = m.lastgroup
        tokens.append((kind, m.group(kind)))
        pos = m.end()
    return tokens


def _split_call(tokens: List[Token]) -> Optional[Tuple[str, List[Token]]]:
    """name ( [arg {, arg}] ) [;]  ->  (name, args)"""
    if tokens and tokens[-1] == ("punct", ";"):
        tokens = tokens[:-1]
    if len(tokens) < 3 or tokens[0][0] != "name" or tokens[1] != ("punct", "(") or tokens[-1] != ("punct", ")"):
        return None
    inner = tokens[2:-1]
    if not inner:
        return tokens[0][1], []
    args = inner[0::2]; seps = inner[1::2]
    if any(t[0] == "punct" for t in args) or any(s != ("punct", ",") for s in seps) or len(args) != len(seps) + 1:
        return None
    return tokens[0][1], args

# ---------- Argument helpers ----------

def _pin(tok: Token, ln: int) -> int:
    if tok[0] != "num":
        raise InvalidPinNumber(f'Pin "{tok[1]}" must be a pin number.', ln)
    return int(tok[1])


def _number(tok: Token, what: str, ln: int) -> int:
    if tok[0] != "num":
        raise InvalidDirectionOrValue(f'Invalid {what} "{tok[1]}": expected a number.', ln)
    return int(tok[1])


def _keyword(tok: Token, what: str, allowed: str, ln: int) -> str:
    if tok[0] != "name":
        raise InvalidDirectionOrValue(f'Invalid {what} "{tok[1]}".', ln, f"Use {allowed}.")
    return tok[1].upper()


Builder = Callable[[str, List[Token], int], Statement]

_CALLS: Dict[str, Tuple[Tuple[int, ...], str, Builder]] = {
    "pinmode": ((2,), "pinMode(pin, OUTPUT)",
                lambda n, a, ln: PinMode(_pin(a[0], ln), _keyword(a[1], "mode", "INPUT or OUTPUT", ln), ln)),
    "digitalwrite": ((2,), "digitalWrite(pin, HIGH)",
                     lambda n, a, ln: DigitalWrite(_pin(a[0], ln), _keyword(a[1], "value", "HIGH or LOW", ln), ln)),
    "setdutycycle": ((2,), "setDutyCycle(pin, 0-100)",
                     lambda n, a, ln: SetDutyCycle(_pin(a[0], ln), _number(a[1], "duty cycle", ln), ln)),
    "analogwrite": ((2,), "analogWrite(pin, value)",
                    lambda n, a, ln: AnalogWrite(_pin(a[0], ln), _number(a[1], "value", ln), ln)),
    "delay": ((1,), "delay(ms)", lambda n, a, ln: Wait(_number(a[0], "delay value", ln), ln)),
    "timer1.initialize": ((0, 1), "Timer1.initialize(20000)",
                          lambda n, a, ln: TimerInitialize(Timer.TIMER1, _number(a[0], "period", ln) if a else None, ln)),
    "timer0.initialize": ((0,), "Timer0.initialize()", lambda n, a, ln: TimerInitialize(Timer.TIMER0, None, ln)),
    "timer1.pwm": ((2,), "Timer1.pwm(pin, 0-1023)",
                   lambda n, a, ln: TimerPwm(Timer.TIMER1, _pin(a[0], ln), _number(a[1], "duty cycle", ln), ln)),
    "timer0.pwm": ((2,), "Timer0.pwm(pin, 0-255)",
                   lambda n, a, ln: TimerPwm(Timer.TIMER0, _pin(a[0], ln), _number(a[1], "duty cycle", ln), ln)),
    "timer1.stop": ((0,), "Timer1.stop()", lambda n, a, ln: TimerStop(Timer.TIMER1, ln)),
    "timer0.stop": ((0,), "Timer0.stop()", lambda n, a, ln: TimerStop(Timer.TIMER0, ln)),
}


def parse_statement(line: str, line_number: int = 0) -> Optional[Statement]:
    """Parse one source line; None for blank/comment-only lines."""
    text = strip_line_comment(line).strip()
    if not text:
        return None
    if _IF.match(text) or _ELSE.match(text) or _BRACE.match(text):
        return Conditional(text, line_number)
    tokens = tokenize(text)
    call = _split_call(tokens) if tokens else None
    if call is None:
        raise UnrecognizedStatement(f'Unrecognized command "{text}".', line_number, f"Supported: {SUPPORTED}")
    name, args = call
    entry = _CALLS.get(name.lower())
    if entry is None:
        raise UnrecognizedStatement(f'Unrecognized command "{text}".', line_number, f"Supported: {SUPPORTED}")
    arities, example, build = entry
    if len(args) not in arities:
        raise UnrecognizedStatement(f'Wrong number of arguments in "{text}".', line_number, f"Example: {example};")
    return build(name.lower(), args, line_number)
