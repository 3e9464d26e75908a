from __future__ import annotations
import logging, threading
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from pinlab.config import Limits
from pinlab.errors import ProgramError
from pinlab.interpreter import StatementInterpreter
from pinlab.logging_config import sketch_extra
from pinlab.parser import ParsedProgram
from pinlab.pins import PinBoard
from pinlab.recorder import ExecutionRecorder
from pinlab.statements import WRITE_STATEMENTS, Statement, Wait
from pinlab.timeline import Body, EmissionTracker, Event, Sequence, event_kind


@dataclass
class RunResult:
    sequence: Sequence
    iterations: int = 0
    stopped: bool = False
    error: Optional[ProgramError] = None

    @property
    def ok(self) -> bool: return self.error is None


class LiveRunner:
    """
    Runs a learner's program in real time, one statement at a time.

    delay() is the only place the run blocks; the wait is interruptible so
    stop() takes effect immediately. The stop flag is also checked before each
    statement, so at most one statement runs after stop() is called.
    A ProgramError ends the run and is returned (and passed to on_error)
    rather than raised.
    """

    def __init__(self, usable_pins: Iterable[int] = range(8, 14), limits: Optional[Limits] = None, *,
                 recorder: Optional[ExecutionRecorder] = None, step_delay_ms: int = 50, max_iterations: int = 1000,
                 sleep: Optional[Callable[[int], None]] = None,
                 on_statement: Optional[Callable[[int, Statement, PinBoard], None]] = None,
                 on_event: Optional[Callable[[Event], None]] = None,
                 on_iteration: Optional[Callable[[int], None]] = None,
                 on_error: Optional[Callable[[ProgramError], None]] = None):
        self.usable_pins = tuple(usable_pins); self.limits = limits or Limits()
        self.recorder = recorder or ExecutionRecorder()
        self.step_delay_ms = step_delay_ms; self.max_iterations = max_iterations
        self.on_statement = on_statement; self.on_event = on_event
        self.on_iteration = on_iteration; self.on_error = on_error
        self._stop = threading.Event()
        self._sleep = sleep or self._wait_or_stop
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def stop(self): self._stop.set()

    @property
    def stop_requested(self) -> bool: return self._stop.is_set()

    def _wait_or_stop(self, ms: int):
        self._stop.wait(ms / 1000.0)

    def run(self, program: ParsedProgram, max_iterations: Optional[int] = None) -> RunResult:
        limit = self.max_iterations if max_iterations is None else max_iterations
        self._stop.clear()
        interp = StatementInterpreter(PinBoard(self.usable_pins), self.limits)
        tracker = EmissionTracker()
        iterations, error = 0, None
        self.recorder.start()
        self._log.info("Live run started (max %s iterations)", limit)
        try:
            done = self._run_body(program, Body.INIT, interp, tracker)
            while done and program.is_looping and iterations < limit:
                if not self._run_body(program, Body.MAIN, interp, tracker):
                    break
                iterations += 1
                if self.on_iteration: self.on_iteration(iterations)
        except ProgramError as e:
            error = e
            self._log.error("Run halted (%s): %s", e.kind.value, e.detail, extra=sketch_extra(e.line_number))
            if self.on_error: self.on_error(e)
        finally:
            self.recorder.stop()
        stopped = self._stop.is_set()
        self._log.info("Live run finished after %s iterations (stopped=%s, error=%s)",
                       iterations, stopped, error.kind.value if error else None)
        return RunResult(self.recorder.build_sequence(), iterations, stopped, error)

    def _run_body(self, program: ParsedProgram, origin: Body, interp: StatementInterpreter,
                  tracker: EmissionTracker) -> bool:
        for ln, text in program.statement_lines(origin):
            if self._stop.is_set():
                return False
            stmt = interp.execute_line(text, ln)
            if stmt is None:
                continue
            if self.on_statement: self.on_statement(ln, stmt, interp.board)
            if isinstance(stmt, Wait):
                self._sleep(stmt.ms)
                continue
            if isinstance(stmt, WRITE_STATEMENTS):
                ev = tracker.observe(interp.board, stmt.pin, event_kind(stmt), origin, self.recorder.elapsed_ms())
                if ev is not None:
                    recorded = self.recorder.record(ev)
                    if recorded is not None and self.on_event: self.on_event(recorded)
            if self.step_delay_ms:
                self._sleep(self.step_delay_ms)
        return True
