import logging
import pytest

from pinlab.errors import InvalidPinNumber
from pinlab.extractor import TimelineExtractor
from pinlab.parser import ParsedProgram, ProgramParser
from pinlab.timeline import Body, EventKind

from sketches import BLINK, PWM_PULSE, SEE_SAW, TIMER_ONE


def extract(src, **kw):
    return TimelineExtractor().extract(ProgramParser().parse(src), **kw)


def test_blink_timeline():
    seq = extract(BLINK)
    assert [(e.time, e.pin, e.is_on) for e in seq.events] == [(0, 13, True), (1000, 13, False)]
    assert all(e.kind is EventKind.DIGITAL and e.origin is Body.MAIN for e in seq.events)
    assert seq.total_duration_ms == 1000
    assert seq.is_looping


def test_extraction_is_deterministic():
    assert extract(SEE_SAW) == extract(SEE_SAW)


def test_first_write_to_each_pin_is_an_event():
    seq = extract(SEE_SAW)
    assert [(e.time, e.pin, e.is_on) for e in seq.events] == [
        (0, 13, True), (0, 12, False), (1000, 13, False), (1000, 12, True)]


def test_repeated_writes_are_collapsed():
    src = ("void setup() {\n  pinMode(13, OUTPUT);\n}\n"
           "void loop() {\n  digitalWrite(13, HIGH);\n  delay(100);\n  digitalWrite(13, HIGH);\n}\n")
    assert len(extract(src)) == 1


def test_pwm_events_carry_duty():
    seq = extract(PWM_PULSE)
    assert [(e.time, e.is_on, e.duty_cycle_percent) for e in seq.events] == [(0, True, 50), (2000, False, 0)]
    assert all(e.kind is EventKind.PWM for e in seq.events)


def test_timer_pwm_events():
    seq = extract(TIMER_ONE)
    assert [(e.time, e.pin, e.duty_cycle_percent) for e in seq.events] == [(0, 9, 50), (500, 9, 0)]


def test_more_iterations_extend_the_timeline():
    seq = extract(BLINK, iterations=3)
    assert [e.time for e in seq.events] == [0, 1000, 2000, 3000, 4000, 5000]
    assert seq.total_duration_ms == 5000


def test_setup_writes_are_marked_as_init():
    src = "void setup() {\n  pinMode(12, OUTPUT);\n  digitalWrite(12, HIGH);\n  delay(300);\n}\n"
    seq = extract(src)
    assert [(e.time, e.origin) for e in seq.events] == [(0, Body.INIT)]
    assert not seq.is_looping


def test_write_to_non_output_pin_is_dropped(caplog):
    program = ParsedProgram(main_body="\n  digitalWrite(13, HIGH);\n  delay(10);\n")
    with caplog.at_level(logging.WARNING):
        seq = TimelineExtractor().extract(program)
    assert len(seq) == 0 and seq.total_duration_ms == 0
    assert "not in OUTPUT mode" in caplog.text
    assert [r.sketch_line for r in caplog.records if r.levelno == logging.WARNING] == [2]


def test_invalid_pin_aborts():
    program = ParsedProgram(init_body="\n  pinMode(3, OUTPUT);\n")
    with pytest.raises(InvalidPinNumber) as exc:
        TimelineExtractor().extract(program)
    assert exc.value.line_number == 2


def test_digital_high_on_a_pwm_pin_is_not_a_change():
    src = ("void setup() {\n  pinMode(9, OUTPUT);\n}\n"
           "void loop() {\n  setDutyCycle(9, 50);\n  delay(100);\n  digitalWrite(9, HIGH);\n  delay(100);\n}\n")
    seq = extract(src)
    assert [(e.time, e.is_on, e.kind, e.duty_cycle_percent) for e in seq.events] == [(0, True, EventKind.PWM, 50)]


def test_pwm_change_on_a_digitally_high_pin_is_an_event():
    src = ("void setup() {\n  pinMode(9, OUTPUT);\n}\n"
           "void loop() {\n  digitalWrite(9, HIGH);\n  delay(100);\n  setDutyCycle(9, 40);\n  delay(100);\n}\n")
    seq = extract(src)
    assert [(e.time, e.kind, e.duty_cycle_percent) for e in seq.events] == [
        (0, EventKind.DIGITAL, None), (100, EventKind.PWM, 40)]
