import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from rescope.runtime.core import FunctionTable
from rescope.runtime.errors import (
    ClosingBeforeOpening,
    InvalidFunctionNameCharacter,
    NoClosingBrace,
    ProgramError,
    UnknownFunction,
)
from rescope.runtime.evaluator import Console
from rescope.runtime.interpreter import Interpreter, read_program, run_file, run_program


def test_text_without_scopes_takes_zero_steps():
    result = run_program("nothing to do here")
    assert result.text == "nothing to do here"
    assert result.steps == 0
    assert result.log == []


def test_each_top_level_scope_is_one_step():
    result = run_program("{a:a:b} and {c:c:d}")
    assert result.text == "b and d"
    assert result.steps == 2
    assert result.log == ["step:1", "scope", "step:2", "scope"]


def test_definitions_persist_across_top_level_steps():
    source = "def greet { $0 : (.+) : hello $1 }\ngreet{world}\n"
    assert run_program(source).text == "\nhello world\n"


def test_replacement_text_is_not_rescanned():
    result = run_program("{ a : a : \\{b\\} } tail")
    assert result.text == "{b} tail"
    assert result.steps == 1


def test_get_input_and_print_go_through_the_console():
    printed = []
    console = Console(read_line=lambda prompt: "Ann", write_line=printed.append)
    result = run_program("Hi {get_input(who? ) : (.+) : $1 print(done)}!", console=console)
    assert result.text == "Hi Ann!"
    assert printed == ["done"]


def test_builtins_outside_scopes_stay_as_text():
    printed = []
    console = Console(write_line=printed.append)
    assert run_program("print(hi)", console=console).text == "print(hi)"
    assert printed == []


def test_braces_inside_builtin_payloads_are_not_scopes():
    printed = []
    console = Console(write_line=printed.append)
    assert run_program("{ x : x : print(a}b)done }", console=console).text == "done"
    assert printed == ["a}b"]
    assert run_program("print(a{b})", console=console).text == "print(a{b})"
    assert printed == ["a}b"]


def test_stray_closer_ends_the_run_when_nothing_follows():
    assert run_program("a } b").text == "a } b"
    assert run_program("{a:a:b} }").text == "b }"


def test_stray_closer_before_more_scopes_is_fatal():
    with pytest.raises(ClosingBeforeOpening):
        run_program("a } {b:b:c}")


def test_unclosed_scope_is_fatal():
    with pytest.raises(NoClosingBrace):
        run_program("ok {a:a:b} {never")


def test_errors_stop_the_run():
    with pytest.raises(ProgramError):
        run_program("{ x : x : error(stop here) } {a:a:b}")


def test_call_head_is_part_of_the_region():
    source = "*def twice { $0 : (.*) : $1 $1 }say twice{ab}!"
    assert run_program(source).text == "say abab!"


def test_global_marker_in_region_head():
    source = "x *def star { $0 : .* : S } star{}"
    assert run_program(source).text == "x  S"


def test_definition_header_needs_a_space_before_the_brace():
    with pytest.raises(InvalidFunctionNameCharacter):
        run_program("def f{a:a:b}")


def test_definition_header_takes_one_separator():
    assert run_program("x def\tf { $0 : .* : T } f{y}").text == "x  T"
    assert run_program("def  f {a:a:b}").text == "def  f b"


def test_function_table_can_be_shared_between_runs():
    table = FunctionTable()
    Interpreter("def f { $0 : (.*) : <$1 > }", functions=table).run()
    assert "f" in table
    assert Interpreter("f{z}", functions=table).run().text == "<z>"
    with pytest.raises(UnknownFunction):
        run_program("f{z}")


def test_step_returns_false_when_done():
    interpreter = Interpreter("{a:a:b}{c:c:d}")
    assert interpreter.step()
    assert interpreter.cursor == 1
    assert interpreter.step()
    assert not interpreter.step()
    assert interpreter.text == "bd"


def test_run_file_reads_utf8_with_universal_newlines(tmp_path):
    program = tmp_path / "hello.rsc"
    program.write_bytes("{ héllo : h(é)llo : $1 }\r\n".encode("utf-8"))
    assert read_program(program) == "{ héllo : h(é)llo : $1 }\n"
    assert run_file(program).text == "é\n"
