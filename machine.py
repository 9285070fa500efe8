from __future__ import annotations

import logging
import os
import sys
from enum import Enum
from typing import TextIO

from errors import (
    ConversionError,
    InvalidArithmetic,
    MachineError,
    MalformedInstruction,
    StackUnderflow,
    TypeMismatch,
    UndefinedVariable,
)
from isa import Instruction, Opcode, Value, overflow, parse_integer, to_text

LOG_LEVEL_VARIABLE = "MACHINE_LOG_LEVEL"


class ExecutionState(Enum):
    RUNNING = 0
    HALTED = 1
    FAILED = 2


def truncating_division(dividend: int, divisor: int) -> int:
    quotient = abs(dividend) // abs(divisor)
    if (dividend < 0) != (divisor < 0):
        quotient = -quotient
    return overflow(quotient)


class Interpreter:
    def __init__(self, program: list[str], input_stream: TextIO | None = None, output_stream: TextIO | None = None):
        self._program = tuple(program)
        self._input_stream = input_stream if input_stream is not None else sys.stdin
        self._output_stream = output_stream if output_stream is not None else sys.stdout
        self._instruction_pointer = 0
        self._stack: list[Value] = []
        self._variables: dict[str, Value] = {}
        self._current: Instruction | None = None
        self._instruction_count = 0
        self.state = ExecutionState.RUNNING

    @property
    def instruction_pointer(self) -> int:
        return self._instruction_pointer

    @property
    def instruction_count(self) -> int:
        return self._instruction_count

    @property
    def stack(self) -> list[Value]:
        return list(self._stack)

    @property
    def variables(self) -> dict[str, Value]:
        return dict(self._variables)

    def run(self):
        assert self.state == ExecutionState.RUNNING, "Interpreter already finished: {}".format(self.state.name)
        try:
            while 0 <= self._instruction_pointer < len(self._program):
                line = self._instruction_pointer + 1
                self._current = Instruction.decode(self._program[self._instruction_pointer], line)
                if self._current is None:
                    self._instruction_pointer += 1
                    continue
                self._instruction_count += 1
                if not self._execute(self._current):
                    self.state = ExecutionState.HALTED
                    logging.debug("%s", self)
                    logging.info("halted, instruction count: %d", self._instruction_count)
                    return
                self._instruction_pointer += 1
                logging.debug("%s", self)
        except MachineError as error:
            self.state = ExecutionState.FAILED
            error.line = self._instruction_pointer + 1
            raise
        self.state = ExecutionState.HALTED
        self._write("\n")
        logging.info("end of program, instruction count: %d", self._instruction_count)

    def _execute(self, instruction: Instruction) -> bool:
        opcode = instruction.opcode
        match opcode:
            case Opcode.PUSH_NUM:
                operand = self._require_operand(instruction, "Missing number for PUSH_NUM")
                number = parse_integer(operand)
                if number is None:
                    raise MalformedInstruction("Invalid number for PUSH_NUM")
                self._push(number)
            case Opcode.PUSH_STR:
                self._push(self._require_operand(instruction, "Missing string for PUSH_STR"))
            case Opcode.INCREMENT:
                self._push(overflow(self._pop_number() + 1))
            case Opcode.ADD | Opcode.SUBTRACT | Opcode.MUL | Opcode.DIV:
                right = self._pop_number()
                left = self._pop_number()
                self._push(self._arithmetic(opcode, left, right))
            case Opcode.OUTPUT:
                self._write(to_text(self._pop()))
            case Opcode.ACQUIRE_INPUT:
                self._push(self._acquire_input())
            case Opcode.SET_VAR:
                self._set_variable(self._require_operand(instruction, "Missing variable name for SET_VAR"))
            case Opcode.GET_VAR:
                self._get_variable(self._require_operand(instruction, "Missing variable name for GET_VAR"))
            case Opcode.COMBINE:
                self._combine()
            case Opcode.REPEAT:
                self._repeat()
            case Opcode.REVERSE:
                self._reverse()
            case Opcode.HALT:
                return False
            case None:
                raise MalformedInstruction("Unknown instruction: {}".format(instruction.token))
            case _:
                assert False, "Unhandled opcode {}".format(opcode)
        return True

    @staticmethod
    def _require_operand(instruction: Instruction, message: str) -> str:
        assert instruction.opcode.takes_operand(), "{} takes no operand".format(instruction.opcode)
        if instruction.operand is None:
            raise MalformedInstruction(message)
        return instruction.operand

    @staticmethod
    def _arithmetic(opcode: Opcode, left: int, right: int) -> int:
        assert opcode.is_arithmetic(), "Not an arithmetic opcode: {}".format(opcode)
        match opcode:
            case Opcode.ADD:
                return overflow(left + right)
            case Opcode.SUBTRACT:
                return overflow(left - right)
            case Opcode.MUL:
                return overflow(left * right)
            case Opcode.DIV:
                if right == 0:
                    raise InvalidArithmetic("Division by zero")
                return truncating_division(left, right)

    # stack

    def _push(self, value: Value):
        self._stack.append(value)

    def _pop(self) -> Value:
        if not self._stack:
            raise StackUnderflow("Stack underflow encountered")
        return self._stack.pop()

    def _need(self, count: int, message: str):
        if len(self._stack) < count:
            raise StackUnderflow(message)

    def _pop_number(self) -> int:
        value = self._pop()
        match value:
            case int():
                return value
            case str():
                number = parse_integer(value)
                if number is None:
                    raise ConversionError("Cannot convert string to number: {}".format(value))
                return number
            case _:
                raise TypeMismatch("Expected number on stack but got: {}".format(value))

    # variables

    def _set_variable(self, name: str):
        if not self._stack:
            raise StackUnderflow("Stack is empty, unable to set variable {}".format(name))
        self._variables[name] = self._pop()

    def _get_variable(self, name: str):
        if name not in self._variables:
            raise UndefinedVariable("Variable {} not found".format(name))
        self._push(self._variables[name])

    # strings

    def _combine(self):
        self._need(2, "Not enough elements on the stack for COMBINE")
        second = self._pop()
        first = self._pop()
        match first, second:
            case str(), str():
                self._push(first + second)
            case int(), int():
                self._push(overflow(first + second))
            case _:
                raise TypeMismatch("COMBINE can only operate on two strings or two integers")

    def _repeat(self):
        self._need(2, "Not enough elements on the stack for REPEAT")
        item = self._pop()
        count = self._pop_number()
        if count < 0:
            raise InvalidArithmetic("Repeat count must be a positive number")
        text = to_text(item)
        for _ in range(count):
            self._write(text)

    def _reverse(self):
        self._need(1, "Not enough elements on the stack for REVERSE_STRING")
        item = self._pop()
        match item:
            case str():
                self._push(item[::-1])
            case _:
                raise TypeMismatch("Item for REVERSE_STRING must be a string or variable holding a string")

    # io

    def _write(self, text: str):
        if text:
            self._output_stream.write(text)

    def _acquire_input(self) -> Value:
        self._output_stream.flush()
        try:
            line = self._input_stream.readline()
        except (OSError, ValueError) as error:
            logging.warning("Input is unreadable: %s", error)
            return 0
        if not line:
            logging.warning("Input buffer is empty!")
            return 0
        line = line.removesuffix("\n").removesuffix("\r")
        if not line:
            return 0
        return line

    def __repr__(self):
        return "IP: {:3} INSTR: {} STACK: {} VARS: {}".format(
            self._instruction_pointer, self._current, self._stack, self._variables
        )


def simulation(program: list[str], input_stream: TextIO, output_stream: TextIO) -> int:
    interpreter = Interpreter(program, input_stream, output_stream)
    try:
        interpreter.run()
    except MachineError as error:
        logging.info("fatal: %s", error.report())
        output_stream.write("\n" + error.report() + "\n")
    return interpreter.instruction_count


def read_program(filename: str) -> list[str]:
    with open(filename, encoding="utf-8") as file:
        return [line.rstrip("\n") for line in file]


def main(program_file: str | None, input_file: str | None = None):
    if program_file is None:
        print("Error: Missing file argument.")
        return
    try:
        program = read_program(program_file)
    except OSError as error:
        print("Error while opening file:\n{}".format(error))
        return

    if input_file is None:
        simulation(program, sys.stdin, sys.stdout)
        return
    try:
        file = open(input_file, encoding="utf-8")
    except OSError as error:
        print("Error while opening file:\n{}".format(error))
        return
    with file:
        simulation(program, file, sys.stdout)


if __name__ == "__main__":
    logging.basicConfig(level=os.environ.get(LOG_LEVEL_VARIABLE, "WARNING").upper())
    assert len(sys.argv) <= 3, "Wrong arguments: machine.py <program_file> [<input_file>]"
    program_file = sys.argv[1] if len(sys.argv) > 1 else None
    input_file = sys.argv[2] if len(sys.argv) > 2 else None
    main(program_file, input_file)
