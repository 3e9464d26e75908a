"""
Fuzzy comparison of a candidate timeline against a target timeline.

Timing is judged on the gaps between consecutive events, never on absolute
timestamps, so a constant start-up offset costs nothing. Each aligned pair of
events is scored on four categories and the ratios are combined with the
weights from ValidationSettings (40/25/25/10 by default).
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence as Seq

from pinlab.config import ValidationSettings
from pinlab.pins import percent_to_pwm
from pinlab.timeline import Event, EventKind, Sequence


class DifferenceType(str, Enum):
    LENGTH_MISMATCH = 'length_mismatch'
    PIN_MISMATCH = 'pin_mismatch'
    STATE_MISMATCH = 'state_mismatch'
    PWM_MISMATCH = 'pwm_mismatch'
    TIMING_MISMATCH = 'timing_mismatch'


@dataclass(frozen=True)
class Difference:
    type: DifferenceType
    message: str
    index: Optional[int] = None
    pin: Optional[int] = None
    expected: Any = None
    actual: Any = None


@dataclass
class ValidationDetails:
    interval_matches: int = 0
    pin_matches: int = 0
    state_matches: int = 0
    pwm_matches: int = 0
    total_comparisons: int = 0


@dataclass
class ValidationResult:
    matches: bool = False
    score_percent: int = 0
    differences: List[Difference] = field(default_factory=list)
    details: ValidationDetails = field(default_factory=ValidationDetails)


@dataclass
class SequenceSummary:
    total_events: int
    total_duration_ms: int
    pins_used: List[int]
    digital_events: int
    pwm_events: int
    is_looping: bool


@dataclass
class SequenceAnalysis:
    target: SequenceSummary
    candidate: SequenceSummary
    timing_issues: List[Dict[str, int]]
    average_timing_difference_ms: float
    missing_pins: List[int]
    extra_pins: List[int]
    suggestions: List[str]


def normalize(events: Seq[Event]) -> List[Event]:
    if not events:
        return []
    first = events[0].time
    return [e.shifted(-first) for e in events]


def _pwm_scale(e: Event) -> int:
    return percent_to_pwm(e.duty_cycle_percent or 0)


class SequenceValidator:
    def __init__(self, settings: Optional[ValidationSettings] = None):
        self.settings = settings or ValidationSettings()
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def validate(self, target: Sequence, candidate: Sequence, tolerance_ms: Optional[int] = None) -> ValidationResult:
        tol = self.settings.tolerance_ms if tolerance_ms is None else tolerance_ms
        result = ValidationResult()
        t_events, c_events = normalize(target.events), normalize(candidate.events)

        if not t_events and not c_events:
            result.matches, result.score_percent = True, 100
            return result
        if not t_events or not c_events:
            result.differences.append(Difference(
                DifferenceType.LENGTH_MISMATCH,
                f"Target has {len(t_events)} events, player has {len(c_events)} events",
                expected=len(t_events), actual=len(c_events)))
            return result

        same_length = len(t_events) == len(c_events)
        if not same_length:
            result.differences.append(Difference(
                DifferenceType.LENGTH_MISMATCH,
                f"Different number of events: target={len(t_events)}, player={len(c_events)}",
                expected=len(t_events), actual=len(c_events)))
        for i in range(min(len(t_events), len(c_events))):
            self._compare_event(i, t_events, c_events, tol, result)

        result.score_percent = self._score(result.details)
        result.matches = same_length and result.score_percent >= self.settings.pass_score
        self._log.info("Validation %s (score %s%%, %s differences)", 'MATCH' if result.matches else 'NO MATCH',
                       result.score_percent, len(result.differences))
        return result

    def _score(self, d: ValidationDetails) -> int:
        if not d.total_comparisons:
            return 0
        s, n = self.settings, d.total_comparisons
        raw = (s.interval_weight * d.interval_matches + s.pin_weight * d.pin_matches
               + s.state_weight * d.state_matches + s.pwm_weight * d.pwm_matches) / n * 100
        return int(raw + 0.5)

    def _compare_event(self, i: int, targets: List[Event], cands: List[Event], tol: int, result: ValidationResult):
        t, c = targets[i], cands[i]
        d, diffs = result.details, result.differences
        d.total_comparisons += 1

        if t.pin == c.pin:
            d.pin_matches += 1
        else:
            diffs.append(Difference(DifferenceType.PIN_MISMATCH, f"Event {i}: Expected pin {t.pin}, got pin {c.pin}",
                                    i, t.pin, t.pin, c.pin))

        if t.is_on == c.is_on:
            d.state_matches += 1
        else:
            diffs.append(Difference(DifferenceType.STATE_MISMATCH,
                                    f"Event {i}: Pin {t.pin} expected {'ON' if t.is_on else 'OFF'}, "
                                    f"got {'ON' if c.is_on else 'OFF'}", i, t.pin, t.is_on, c.is_on))

        if t.kind is EventKind.PWM and c.kind is EventKind.PWM:
            if abs(_pwm_scale(t) - _pwm_scale(c)) <= self.settings.pwm_tolerance:
                d.pwm_matches += 1
            else:
                diffs.append(Difference(DifferenceType.PWM_MISMATCH,
                                        f"Event {i}: Pin {t.pin} expected {t.duty_cycle_percent}% duty cycle, "
                                        f"got {c.duty_cycle_percent}%", i, t.pin,
                                        t.duty_cycle_percent, c.duty_cycle_percent))
        else:
            d.pwm_matches += 1

        if i < len(targets) - 1 and i < len(cands) - 1:
            t_gap = targets[i + 1].time - t.time
            c_gap = cands[i + 1].time - c.time
            gap_diff = abs(t_gap - c_gap)
            allowed = self.settings.simultaneous_tolerance_ms if t_gap < self.settings.simultaneous_below_ms else tol
            if gap_diff <= allowed:
                d.interval_matches += 1
            else:
                diffs.append(Difference(DifferenceType.TIMING_MISMATCH,
                                        f"Event {i}: Interval mismatch - expected {t_gap}ms between events, "
                                        f"got {c_gap}ms (diff: {gap_diff}ms)", i, t.pin, t_gap, c_gap))
        else:
            d.interval_matches += 1

    # ---------- Learner feedback ----------

    @staticmethod
    def summarize(seq: Sequence) -> SequenceSummary:
        kinds = [e.kind for e in seq.events]
        return SequenceSummary(total_events=len(seq.events), total_duration_ms=seq.total_duration_ms,
                               pins_used=sorted({e.pin for e in seq.events}),
                               digital_events=kinds.count(EventKind.DIGITAL), pwm_events=kinds.count(EventKind.PWM),
                               is_looping=seq.is_looping)

    def analyze(self, target: Sequence, candidate: Sequence) -> SequenceAnalysis:
        t_events, c_events = normalize(target.events), normalize(candidate.events)
        issues = []
        for i in range(min(len(t_events), len(c_events))):
            diff = abs(t_events[i].time - c_events[i].time)
            if diff > self.settings.tolerance_ms:
                issues.append({'index': i, 'target_time': t_events[i].time, 'player_time': c_events[i].time,
                               'difference': diff})
        t_pins, c_pins = {e.pin for e in t_events}, {e.pin for e in c_events}
        suggestions = []
        if len(t_events) != len(c_events):
            suggestions.append("Check the number of pin state changes in your code")
        if issues:
            suggestions.append("Review the timing of your pin state changes")
        if t_pins - c_pins:
            suggestions.append(f"Your program never changes pin(s) {', '.join(map(str, sorted(t_pins - c_pins)))}")
        if c_pins - t_pins:
            suggestions.append(f"Pin(s) {', '.join(map(str, sorted(c_pins - t_pins)))} should not change")
        avg = sum(x['difference'] for x in issues) / len(issues) if issues else 0.0
        return SequenceAnalysis(self.summarize(target), self.summarize(candidate), issues, avg,
                                sorted(t_pins - c_pins), sorted(c_pins - t_pins), suggestions)
