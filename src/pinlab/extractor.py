from __future__ import annotations
import logging
from typing import Iterable, List, Optional

from pinlab.config import Limits
from pinlab.interpreter import StatementInterpreter
from pinlab.logging_config import sketch_extra
from pinlab.parser import ParsedProgram
from pinlab.pins import Direction, PinBoard
from pinlab.statements import WRITE_STATEMENTS, Wait, parse_statement
from pinlab.timeline import Body, EmissionTracker, Event, Sequence, event_kind


class TimelineExtractor:
    """
    Replays a parsed program (setup, then loop passes) against a
    virtual clock and returns the resulting Sequence. Only delay() moves the
    clock; nothing here sleeps.

    Writes to pins that were never put in OUTPUT mode are dropped with a
    warning instead of failing, so a sloppy target program still yields a
    timeline. Every other ProgramError propagates and aborts extraction.
    """

    def __init__(self, usable_pins: Iterable[int] = range(8, 14), limits: Optional[Limits] = None):
        self.usable_pins = tuple(usable_pins)
        self.limits = limits or Limits()
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def extract(self, program: ParsedProgram, iterations: int = 1) -> Sequence:
        """Setup once, then `iterations` passes of loop (one by default)."""
        interp = StatementInterpreter(PinBoard(self.usable_pins), self.limits)
        tracker = EmissionTracker()
        events: List[Event] = []
        clock = 0
        passes = [Body.INIT] + [Body.MAIN] * max(1, iterations)
        for origin in passes:
            for ln, text in program.statement_lines(origin):
                stmt = parse_statement(text, ln)
                if stmt is None:
                    continue
                if isinstance(stmt, WRITE_STATEMENTS) and interp.board.is_usable(stmt.pin) \
                        and interp.board[stmt.pin].direction is not Direction.OUTPUT:
                    self._log.warning("Pin %s is not in OUTPUT mode, event dropped", stmt.pin, extra=sketch_extra(ln))
                    continue
                interp.execute(stmt)
                if isinstance(stmt, Wait):
                    clock += stmt.ms
                elif isinstance(stmt, WRITE_STATEMENTS):
                    ev = tracker.observe(interp.board, stmt.pin, event_kind(stmt), origin, clock)
                    if ev is not None:
                        events.append(ev)
        total = events[-1].time if events else 0
        seq = Sequence(events=tuple(events), total_duration_ms=total, is_looping=program.is_looping)
        self._log.info("Extracted %s events over %sms (virtual clock %sms, looping=%s)",
                       len(events), total, clock, seq.is_looping)
        return seq
