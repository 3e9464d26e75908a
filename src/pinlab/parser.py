"""
Program parser: source text -> ParsedProgram.

Checks run in this order, each raising on the first problem found:
  1. blank source                        -> EmptySourceError
  2. bracket balance (strings/comments ignored) -> BracketSyntaxError
  3. Timer1./Timer0. used before its #include   -> MissingLibraryDeclaration
  4. neither setup() nor loop() present   -> MissingEntryPoints
  5. analogWrite() anywhere in a body     -> UnsupportedLegacyStatement
  6. pin written/read without the matching pinMode() in setup() -> UndeclaredPinUsage

Line numbers in every error refer to the original source text.
"""
from __future__ import annotations
import logging, re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Set, Tuple

from pinlab.errors import (BracketSyntaxError, EmptySourceError, MissingEntryPoints, MissingLibraryDeclaration,
                           UndeclaredPinUsage, UnsupportedLegacyStatement)
from pinlab.statements import Timer
from pinlab.timeline import Body

_OPEN = {'{': '}', '(': ')', '[': ']'}
_CLOSE = {v: k for k, v in _OPEN.items()}
_ENTRY = {Body.INIT: re.compile(r"\bvoid\s+setup\s*\(\s*(?:void)?\s*\)\s*\{"),
          Body.MAIN: re.compile(r"\bvoid\s+loop\s*\(\s*(?:void)?\s*\)\s*\{")}
_PIN_MODE = re.compile(r"\bpinMode\s*\(\s*(\d+)\s*,\s*(INPUT|OUTPUT)\s*\)", re.IGNORECASE)
_OUTPUT_OPS = re.compile(r"\b(digitalWrite|setDutyCycle|Timer[01]\.pwm)\s*\(\s*(\d+)\s*,", re.IGNORECASE)
_INPUT_OPS = re.compile(r"\b(digitalRead|analogRead)\s*\(\s*(\d+)\s*\)", re.IGNORECASE)
_ANALOG_WRITE = re.compile(r"\banalogWrite\s*\(\s*(\w+)", re.IGNORECASE)
_INCLUDE = re.compile(r"^\s*#\s*include\s*[<\"]\s*([\w.]+)\s*[>\"]")


@dataclass(frozen=True)
class ParsedProgram:
    init_body: str = ''
    main_body: str = ''
    init_line: int = 1       # source line of the first line of init_body
    main_line: int = 1
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    def body(self, which: Body) -> str:
        return self.init_body if which is Body.INIT else self.main_body

    def statement_lines(self, which: Body) -> List[Tuple[int, str]]:
        """(source line, text) for each non-empty, non-comment line of a body."""
        first = self.init_line if which is Body.INIT else self.main_line
        out = []
        for i, raw in enumerate(self.body(which).split('\n')):
            text = raw.strip()
            if text and not text.startswith('//'):
                out.append((first + i, text))
        return out

    @property
    def is_looping(self) -> bool: return bool(self.main_body.strip())


def _scan(source: str) -> Iterator[Tuple[str, str, int, int]]:
    """Yield (char, category, line, column) with category code|string|comment."""
    line, col = 1, 0
    state, quote, escaped = 'code', None, False
    prev, opened_at = '', -1
    for i, ch in enumerate(source):
        nxt = source[i + 1] if i + 1 < len(source) else ''
        col += 1
        if state == 'code':
            if ch == '/' and nxt in '/*' and nxt:
                state = 'line' if nxt == '/' else 'block'
                cat, opened_at = 'comment', i
            elif ch in '"\'':
                state, quote, cat = 'string', ch, 'string'
            else:
                cat = 'code'
        elif state == 'string':
            cat = 'string'
            if escaped:
                escaped = False
            elif ch == '\\':
                escaped = True
            elif ch == quote or ch == '\n':
                state, quote = 'code', None
        elif state == 'line':
            if ch == '\n':
                state, cat = 'code', 'code'
            else:
                cat = 'comment'
        else:
            cat = 'comment'
            # the '*' that opened the comment cannot also close it
            if ch == '/' and prev == '*' and i - 1 > opened_at + 1:
                state = 'code'
        yield ch, cat, line, col
        prev = ch
        if ch == '\n':
            line, col = line + 1, 0


class ProgramParser:
    def __init__(self):
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def parse(self, source: str) -> ParsedProgram:
        if not source or not source.strip():
            raise EmptySourceError("Code is empty.", 0, "Write a setup() and a loop() function.")
        self.check_brackets(source)
        self.check_library_includes(source)
        clean = self.strip_comments(source)

        bodies, warnings = {}, []
        for which, rx in _ENTRY.items():
            bodies[which] = self._extract_body(clean, rx)
        if bodies[Body.INIT] is None and bodies[Body.MAIN] is None:
            raise MissingEntryPoints("Missing both setup() and loop() functions.", 0, "At least one is required.")
        for which, name in ((Body.INIT, 'setup'), (Body.MAIN, 'loop')):
            if bodies[which] is None:
                msg = f"No {name}() function found, using empty {name}"
                self._log.warning(msg); warnings.append(msg)
                bodies[which] = ('', 1)

        program = ParsedProgram(init_body=bodies[Body.INIT][0], main_body=bodies[Body.MAIN][0],
                                init_line=bodies[Body.INIT][1], main_line=bodies[Body.MAIN][1],
                                warnings=tuple(warnings))
        self.check_pin_usage(program)
        self._log.debug("Parsed program: setup@%s loop@%s", program.init_line, program.main_line)
        return program

    # ---------- Checks ----------

    @staticmethod
    def check_brackets(source: str) -> None:
        stack: List[Tuple[str, int, int]] = []
        for ch, cat, line, col in _scan(source):
            if cat != 'code':
                continue
            if ch in _OPEN:
                stack.append((ch, line, col))
            elif ch in _CLOSE:
                if not stack:
                    raise BracketSyntaxError(f"Unmatched closing bracket '{ch}'", line, col)
                opener = stack.pop()
                if opener[0] != _CLOSE[ch]:
                    raise BracketSyntaxError(
                        f"Mismatched brackets. Expected '{_OPEN[opener[0]]}' but found '{ch}'", line, col)
        if stack:
            ch, line, col = stack[-1]
            raise BracketSyntaxError(f"Unmatched opening bracket '{ch}'", line, col)

    @classmethod
    def check_library_includes(cls, source: str) -> None:
        included: Set[str] = set()
        for idx, line in enumerate(cls.strip_comments(source).split('\n'), start=1):
            m = _INCLUDE.match(line)
            if m:
                included.add(m.group(1).lower())
                continue
            for t in Timer:
                if f"{t.label.lower()}." in line.lower() and t.header.lower() not in included:
                    raise MissingLibraryDeclaration(
                        f"{t.label} methods are used but {t.include_line} is missing.", idx,
                        "Add it at the top of your code.")

    @staticmethod
    def strip_comments(source: str) -> str:
        """Blank out comments, keeping newlines so line numbers survive."""
        return ''.join(ch if cat != 'comment' or ch == '\n' else ' ' for ch, cat, _, _ in _scan(source))

    @staticmethod
    def _extract_body(clean: str, rx: re.Pattern) -> Optional[Tuple[str, int]]:
        m = rx.search(clean)
        if not m:
            return None
        start = m.end()                     # just past the opening brace
        depth = 1
        in_string = None
        for i in range(start, len(clean)):
            ch = clean[i]
            if in_string:
                if ch == in_string and clean[i - 1] != '\\': in_string = None
                continue
            if ch in '"\'':
                in_string = ch
            elif ch == '{':
                depth += 1
            elif ch == '}':
                depth -= 1
                if depth == 0:
                    return clean[start:i], clean.count('\n', 0, start) + 1
        return clean[start:], clean.count('\n', 0, start) + 1

    def check_pin_usage(self, program: ParsedProgram) -> None:
        declared: Set[Tuple[int, str]] = set()
        for _, text in program.statement_lines(Body.INIT):
            for m in _PIN_MODE.finditer(text):
                declared.add((int(m.group(1)), m.group(2).upper()))

        for which in (Body.INIT, Body.MAIN):
            for ln, text in program.statement_lines(which):
                m = _ANALOG_WRITE.search(text)
                if m:
                    raise UnsupportedLegacyStatement(
                        "analogWrite() is not supported.", ln,
                        f"Use setDutyCycle(pin, dutyCycle) instead, where dutyCycle is 0-100%. "
                        f"Example: setDutyCycle({m.group(1)}, 50);")
                for rx, direction in ((_OUTPUT_OPS, 'OUTPUT'), (_INPUT_OPS, 'INPUT')):
                    for m in rx.finditer(text):
                        pin = int(m.group(2))
                        if (pin, direction) not in declared:
                            raise UndeclaredPinUsage(
                                f"Pin {pin} is used in {m.group(1)}() but not declared as {direction}.", ln,
                                f"Add: pinMode({pin}, {direction});")
