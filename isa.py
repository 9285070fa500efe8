from __future__ import annotations

import re
from enum import Enum

INT32_MAX = 2**31 - 1
INT32_MIN = -(2**31)
HALF_N = 2**31
N = HALF_N * 2

# characters up to and including space, trimmed from both ends of a line
TRIMMED = "".join(chr(code) for code in range(33))

INTEGER_LITERAL = re.compile(r"[+-]?[0-9]+")

Value = int | str


def overflow(value: int) -> int:
    return (value + HALF_N) % N - HALF_N


def is_valid_word(word: int) -> bool:
    return INT32_MAX >= word >= INT32_MIN


def parse_integer(text: str) -> int | None:
    if not INTEGER_LITERAL.fullmatch(text):
        return None
    number = int(text)
    if not is_valid_word(number):
        return None
    return number


def to_text(value: Value) -> str:
    match value:
        case int():
            return str(value)
        case str():
            return value
        case _:
            assert False, "Unknown value type: {}".format(type(value).__name__)


class Opcode(str, Enum):
    PUSH_NUM = "PUSH_NUM"
    PUSH_STR = "PUSH_STR"
    INCREMENT = "INCREMENT"
    ADD = "ADD"
    SUBTRACT = "SUBTRACT"
    MUL = "MUL"
    DIV = "DIV"
    OUTPUT = "OUTPUT"
    ACQUIRE_INPUT = "ACQUIRE_INPUT"
    SET_VAR = "SET_VAR"
    GET_VAR = "GET_VAR"
    COMBINE = "COMBINE"
    REPEAT = "REPEAT"
    REVERSE = "REVERSE"
    HALT = "HALT"

    def takes_operand(self):
        return self in {Opcode.PUSH_NUM, Opcode.PUSH_STR, Opcode.SET_VAR, Opcode.GET_VAR}

    def is_arithmetic(self):
        return self in {Opcode.ADD, Opcode.SUBTRACT, Opcode.MUL, Opcode.DIV}

    def __repr__(self):
        return self.name


class Instruction:
    """
    One decoded program line.

    `token` is the leading word as written, `operand` is everything after the
    first space verbatim (None when the line has no space). `opcode` is None
    when the token names no known instruction; the dispatch loop reports it.
    """

    def __init__(self, token: str, operand: str | None, line: int):
        self.token = token
        self.operand = operand
        self.line = line
        try:
            self.opcode = Opcode(token)
        except ValueError:
            self.opcode = None

    @staticmethod
    def decode(text: str, line: int) -> Instruction | None:
        text = text.strip(TRIMMED)
        if not text:
            return None
        token, _, operand = text.partition(" ")
        if token == text:
            return Instruction(token, None, line)
        return Instruction(token, operand, line)

    def __repr__(self):
        if self.operand is None:
            return "{}".format(self.token)
        return '{} "{}"'.format(self.token, self.operand)
