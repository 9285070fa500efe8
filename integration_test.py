import contextlib
import io
import logging
import os
import tempfile
import unittest
import unittest.mock

import machine
import pytest


@pytest.mark.golden_test("golden/*.yml")
def test_machine(golden, caplog):
    """
    `pytest . -v --update-goldens`
    Input:

    - `in_source` -- program text, one instruction per line
    - `in_stdin` -- data read by ACQUIRE_INPUT

    Output:

    - `out_stdout` -- everything the program wrote, error report included
    """
    caplog.set_level(logging.DEBUG)

    with tempfile.TemporaryDirectory() as tmpdirname:
        source = os.path.join(tmpdirname, "source.sm")
        input_stream = os.path.join(tmpdirname, "input.txt")

        with open(source, "w", encoding="utf-8") as file:
            file.write(golden["in_source"])
        with open(input_stream, "w", encoding="utf-8") as file:
            file.write(golden["in_stdin"])

        with contextlib.redirect_stdout(io.StringIO()) as stdout:
            machine.main(source, input_stream)

    assert stdout.getvalue() == golden.out["out_stdout"]
    assert "instruction count" in caplog.text or "fatal" in caplog.text


class TestCommandLine(unittest.TestCase):
    def _main(self, *args) -> str:
        with contextlib.redirect_stdout(io.StringIO()) as stdout:
            machine.main(*args)
        return stdout.getvalue()

    def test_missing_file_argument(self):
        assert self._main(None) == "Error: Missing file argument.\n"

    def test_unreadable_file(self):
        with tempfile.TemporaryDirectory() as tmpdirname:
            missing = os.path.join(tmpdirname, "missing.sm")
            output = self._main(missing)
        assert output.startswith("Error while opening file:\n")
        assert "missing.sm" in output

    def test_unreadable_input_file(self):
        with tempfile.TemporaryDirectory() as tmpdirname:
            source = os.path.join(tmpdirname, "source.sm")
            with open(source, "w", encoding="utf-8") as file:
                file.write("PUSH_STR x\nOUTPUT\n")
            output = self._main(source, os.path.join(tmpdirname, "nope.txt"))
        assert output.startswith("Error while opening file:\n")
        assert "nope.txt" in output

    def test_read_program_keeps_blank_lines(self):
        with tempfile.TemporaryDirectory() as tmpdirname:
            source = os.path.join(tmpdirname, "source.sm")
            with open(source, "w", encoding="utf-8") as file:
                file.write("PUSH_NUM 1\n\n  OUTPUT  \r\nHALT")
            program = machine.read_program(source)
        assert program == ["PUSH_NUM 1", "", "  OUTPUT  ", "HALT"]

    def test_reads_standard_input_without_input_file(self):
        with tempfile.TemporaryDirectory() as tmpdirname:
            source = os.path.join(tmpdirname, "source.sm")
            with open(source, "w", encoding="utf-8") as file:
                file.write("ACQUIRE_INPUT\nOUTPUT\n")
            with unittest.mock.patch("sys.stdin", io.StringIO("typed\n")):
                output = self._main(source)
        assert output == "typed\n"

    def test_error_report_ends_run(self):
        output = io.StringIO()
        count = machine.simulation(["PUSH_NUM 1", "GET_VAR missing", "OUTPUT"], io.StringIO(), output)
        assert output.getvalue() == "\nVariable missing not found at line 2\n"
        assert count == 2
