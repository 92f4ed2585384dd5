import io

import pytest

from pulseira.console import KeyConsole


def test_yes_gives_one():
    console = KeyConsole()
    assert console.enter_passkey(["key", "Yes"]) == 1
    assert console.receive_key(0.1) == 1


def test_other_word_gives_zero():
    console = KeyConsole()
    assert console.enter_passkey(["key", "no"]) == 0
    assert console.receive_key(0.1) == 0


def test_number_is_parsed():
    console = KeyConsole()
    assert console.enter_passkey(["key", "123456"]) == 123456
    assert console.receive_key(0.1) == 123456


def test_wrong_argument_count():
    console = KeyConsole()
    with pytest.raises(ValueError):
        console.enter_passkey(["key"])
    with pytest.raises(ValueError):
        console.enter_passkey(["key", "1", "2"])


def test_not_a_number():
    console = KeyConsole()
    with pytest.raises(ValueError):
        console.enter_passkey(["key", "#1"])


def test_run_command_dispatches_key():
    console = KeyConsole()
    assert console.run_command("key 42") == 42
    assert console.receive_key(0.1) == 42


def test_run_command_unknown():
    console = KeyConsole()
    with pytest.raises(ValueError):
        console.run_command("pair 1")
    with pytest.raises(ValueError):
        console.run_command("   ")


def test_receive_key_times_out():
    console = KeyConsole()
    with pytest.raises(TimeoutError):
        console.receive_key(0.01)


def test_second_key_is_dropped_while_pending():
    console = KeyConsole()
    console.run_command("key 5")
    console.run_command("key 6")
    assert console.receive_key(0.1) == 5
    with pytest.raises(TimeoutError):
        console.receive_key(0.01)


def test_serve_runs_commands_and_echoes():
    console = KeyConsole()
    echo = io.StringIO()
    assert console.serve(io.StringIO("key y\r"), echo) == 1
    assert console.receive_key(0.1) == 1
    assert echo.getvalue() == "key y\r\n"


def test_serve_skips_failing_commands():
    console = KeyConsole()
    assert console.serve(io.StringIO("bogus\rkey 9\r")) == 1
    assert console.receive_key(0.1) == 9


def test_serve_without_line_end_runs_nothing():
    console = KeyConsole()
    assert console.serve(io.StringIO("key 3")) == 0
    with pytest.raises(TimeoutError):
        console.receive_key(0.01)