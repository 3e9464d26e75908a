import logging
import pytest

from pinlab.errors import (ErrorKind, InvalidDirectionOrValue, InvalidPinNumber, UndeclaredPinUsage,
                           UninitializedTimer, UnsupportedLegacyStatement)
from pinlab.interpreter import StatementInterpreter
from pinlab.pins import Direction, PinBoard
from pinlab.statements import Timer, Wait


def build():
    return StatementInterpreter(PinBoard(range(8, 14)))


def test_pin_mode_then_digital_write():
    it = build()
    it.execute_line("pinMode(13, OUTPUT);", 1)
    assert it.board[13].direction is Direction.OUTPUT
    it.execute_line("digitalWrite(13, HIGH);", 2)
    assert it.board[13].digital_level and it.board[13].is_on
    it.execute_line("digitalWrite(13, LOW);", 3)
    assert not it.board[13].is_on


def test_pin_out_of_range():
    with pytest.raises(InvalidPinNumber) as exc:
        build().execute_line("pinMode(7, OUTPUT);", 4)
    assert exc.value.line_number == 4
    assert exc.value.suggestion == "Use pins 8-13."
    assert exc.value.kind is ErrorKind.INVALID_PIN


def test_write_without_output_mode():
    with pytest.raises(UndeclaredPinUsage) as exc:
        build().execute_line("digitalWrite(12, HIGH);", 9)
    assert exc.value.suggestion == "Add: pinMode(12, OUTPUT);"
    assert exc.value.message.startswith("Line 9: ")


def test_input_pin_cannot_be_written():
    it = build()
    it.execute_line("pinMode(12, INPUT);")
    with pytest.raises(UndeclaredPinUsage):
        it.execute_line("setDutyCycle(12, 20);")


def test_bad_mode_and_level():
    it = build()
    with pytest.raises(InvalidDirectionOrValue):
        it.execute_line("pinMode(13, OUTPUTS);")
    it.execute_line("pinMode(13, OUTPUT);")
    with pytest.raises(InvalidDirectionOrValue):
        it.execute_line("digitalWrite(13, ON);")


def test_duty_cycle_sets_pwm_and_percent():
    it = build()
    it.execute_line("pinMode(9, OUTPUT);")
    it.execute_line("setDutyCycle(9, 50);")
    st = it.board[9]
    assert st.pwm_value == 128 and st.duty_cycle_percent == 50 and st.is_on
    it.execute_line("setDutyCycle(9, 0);")
    assert st.pwm_value == 0 and not st.is_on
    with pytest.raises(InvalidDirectionOrValue):
        it.execute_line("setDutyCycle(9, 101);")


def test_pwm_keeps_pin_on_even_after_digital_low():
    it = build()
    it.execute_line("pinMode(9, OUTPUT);")
    it.execute_line("setDutyCycle(9, 30);")
    it.execute_line("digitalWrite(9, LOW);")
    assert it.board[9].is_on


def test_analog_write_is_rejected_with_hint():
    it = build()
    it.execute_line("pinMode(9, OUTPUT);")
    with pytest.raises(UnsupportedLegacyStatement) as exc:
        it.execute_line("analogWrite(9, 128);", 5)
    assert "setDutyCycle(9, 50);" in exc.value.suggestion


def test_timer_pwm_requires_initialize():
    it = build()
    it.execute_line("pinMode(9, OUTPUT);")
    with pytest.raises(UninitializedTimer) as exc:
        it.execute_line("Timer1.pwm(9, 512);", 3)
    assert exc.value.suggestion == "Add: Timer1.initialize(20000);"
    with pytest.raises(UninitializedTimer) as exc:
        it.execute_line("Timer0.pwm(9, 10);", 4)
    assert exc.value.suggestion == "Add: Timer0.initialize();"


def test_timer_pwm_scales_raw_duty():
    it = build()
    it.execute_line("pinMode(9, OUTPUT);")
    it.execute_line("Timer1.initialize(20000);")
    it.execute_line("Timer1.pwm(9, 512);")
    assert it.board[9].pwm_value == 128 and it.board[9].duty_cycle_percent == 50
    it.execute_line("Timer0.initialize();")
    it.execute_line("Timer0.pwm(9, 255);")
    assert it.board[9].pwm_value == 255 and it.board[9].duty_cycle_percent == 100
    with pytest.raises(InvalidDirectionOrValue):
        it.execute_line("Timer0.pwm(9, 256);")


def test_timer_stop_resets_timer_but_not_outputs():
    it = build()
    it.execute_line("pinMode(9, OUTPUT);")
    it.execute_line("Timer1.initialize(20000);")
    it.execute_line("Timer1.pwm(9, 1023);")
    it.execute_line("Timer1.stop();")
    assert not it.timers[Timer.TIMER1].initialized
    assert it.board[9].pwm_value == 255
    with pytest.raises(UninitializedTimer):
        it.execute_line("Timer1.pwm(9, 100);")


def test_odd_timer1_period_only_warns(caplog):
    it = build()
    with caplog.at_level(logging.WARNING):
        it.execute_line("Timer1.initialize(1000);")
    assert it.timers[Timer.TIMER1].initialized
    assert "not optimal" in caplog.text


def test_wait_is_range_checked_not_slept():
    it = build()
    assert it.execute_line("delay(10000);") == Wait(10000)
    with pytest.raises(InvalidDirectionOrValue):
        it.execute_line("delay(10001);")


def test_conditionals_are_noops():
    it = build()
    it.execute_line("if (digitalRead(8) == HIGH) {")
    it.execute_line("}")
    assert all(not it.board[p].is_on for p in it.board)


def test_reset():
    it = build()
    it.execute_line("pinMode(13, OUTPUT);")
    it.execute_line("Timer0.initialize();")
    it.reset()
    assert it.board[13].direction is Direction.UNSET
    assert not it.timers[Timer.TIMER0].initialized
