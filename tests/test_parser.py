import pytest

from pinlab.errors import (BracketSyntaxError, EmptySourceError, ErrorKind, MissingEntryPoints,
                           MissingLibraryDeclaration, UndeclaredPinUsage, UnsupportedLegacyStatement)
from pinlab.parser import ProgramParser
from pinlab.timeline import Body

from sketches import BLINK, TIMER_ONE


def parse(src):
    return ProgramParser().parse(src)


def test_blink_bodies_and_line_numbers():
    prog = parse(BLINK)
    assert prog.init_line == 1 and prog.main_line == 5
    assert prog.statement_lines(Body.INIT) == [(2, "pinMode(13, OUTPUT);")]
    assert [ln for ln, _ in prog.statement_lines(Body.MAIN)] == [6, 7, 8, 9]
    assert prog.statement_lines(Body.MAIN)[1] == (7, "delay(1000);")
    assert prog.is_looping
    assert prog.warnings == ()


@pytest.mark.parametrize("src", ["", "   \n\t\n"])
def test_empty_source(src):
    with pytest.raises(EmptySourceError):
        parse(src)


def test_mismatched_bracket_position():
    with pytest.raises(BracketSyntaxError) as exc:
        parse("void setup() {\n  pinMode(13, OUTPUT;\n}\n")
    e = exc.value
    assert (e.line_number, e.column) == (3, 1)
    assert e.kind is ErrorKind.SYNTAX
    assert "line 3, column 1" in e.message


def test_unmatched_opener_reports_where_it_opened():
    with pytest.raises(BracketSyntaxError) as exc:
        parse("void loop() {\n  delay(10);\n")
    assert (exc.value.line_number, exc.value.column) == (1, 13)


def test_unmatched_closer():
    with pytest.raises(BracketSyntaxError) as exc:
        parse("void loop() {\n}\n}\n")
    assert (exc.value.line_number, exc.value.column) == (3, 1)


def test_brackets_inside_strings_and_comments_are_ignored():
    src = ('// setup( {\n'
           'void setup() {\n'
           '  /* } ) ] */\n'
           '  pinMode(13, OUTPUT); // ((\n'
           '}\n'
           'void loop() {\n'
           '  char *s = "}{";\n'
           '}\n')
    ProgramParser.check_brackets(src)


def test_strip_comments_keeps_line_count():
    src = "a /* one\ntwo */ b // three\nc\n"
    clean = ProgramParser.strip_comments(src)
    assert clean.count("\n") == src.count("\n")
    assert "two" not in clean and "three" not in clean
    assert clean.split("\n")[2] == "c"


def test_timer_without_include():
    src = "void setup() {\n  pinMode(9, OUTPUT);\n  Timer1.initialize(20000);\n}\n"
    with pytest.raises(MissingLibraryDeclaration) as exc:
        parse(src)
    assert exc.value.line_number == 3
    assert "#include <TimerOne.h>" in exc.value.message


def test_include_inside_comment_does_not_count():
    src = "// #include <TimerOne.h>\nvoid setup() {\n  Timer1.initialize();\n}\n"
    with pytest.raises(MissingLibraryDeclaration):
        parse(src)


def test_timer_sketch_parses():
    prog = parse(TIMER_ONE)
    assert prog.statement_lines(Body.INIT)[1] == (5, "Timer1.initialize(20000);")


def test_missing_both_entry_points():
    with pytest.raises(MissingEntryPoints):
        parse("int x = 1;\n")


def test_missing_loop_is_a_warning():
    prog = parse("void setup() {\n  pinMode(13, OUTPUT);\n}\n")
    assert not prog.is_looping
    assert prog.main_body == ""
    assert any("loop" in w for w in prog.warnings)


def test_loop_only_program():
    prog = parse("void loop() {\n  delay(5);\n}\n")
    assert prog.statement_lines(Body.INIT) == []
    assert prog.statement_lines(Body.MAIN) == [(2, "delay(5);")]


def test_undeclared_output_pin():
    src = "void setup() {\n}\nvoid loop() {\n  digitalWrite(13, HIGH);\n}\n"
    with pytest.raises(UndeclaredPinUsage) as exc:
        parse(src)
    assert exc.value.line_number == 4
    assert exc.value.suggestion == "Add: pinMode(13, OUTPUT);"


def test_commented_out_pin_mode_does_not_declare():
    src = "void setup() {\n  // pinMode(13, OUTPUT);\n}\nvoid loop() {\n  digitalWrite(13, HIGH);\n}\n"
    with pytest.raises(UndeclaredPinUsage):
        parse(src)


def test_input_read_needs_input_mode():
    src = ("void setup() {\n  pinMode(8, OUTPUT);\n}\n"
           "void loop() {\n  if (digitalRead(8) == HIGH) {\n  }\n}\n")
    with pytest.raises(UndeclaredPinUsage) as exc:
        parse(src)
    assert exc.value.line_number == 5
    assert exc.value.suggestion == "Add: pinMode(8, INPUT);"


def test_analog_write_rejected_before_execution():
    src = "void setup() {\n  pinMode(9, OUTPUT);\n}\nvoid loop() {\n  analogWrite(9, 128);\n}\n"
    with pytest.raises(UnsupportedLegacyStatement) as exc:
        parse(src)
    assert exc.value.line_number == 5
    assert "setDutyCycle(9, 50);" in exc.value.suggestion
