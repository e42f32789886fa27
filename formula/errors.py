import enum
from dataclasses import dataclass

from formula.utils import PrintableEnum, error_pointer


class ErrorKind(PrintableEnum):
    """INCOMPLETE_EXPRESSION only comes from hand-built trees, ``parse`` never returns an incomplete node"""

    INVALID_CHARACTER = enum.auto()
    INVALID_TOKEN = enum.auto()
    UNBALANCED_PARENTHESES = enum.auto()
    EMPTY_EXPRESSION = enum.auto()
    MISSING_OPERAND = enum.auto()
    INCOMPLETE_OPERAND = enum.auto()
    UNCOLLAPSED_EXPRESSION = enum.auto()
    UNBOUND_VARIABLE = enum.auto()
    INCOMPLETE_EXPRESSION = enum.auto()
    UNKNOWN_VARIABLE = enum.auto()


@dataclass
class ParserError(Exception):
    kind: ErrorKind
    errmsg: str
    code: str
    error_char_idx: int

    def __str__(self) -> str:
        return "\n".join([f"[Parser error] {self.errmsg}", *error_pointer(self.code, self.error_char_idx)])


@dataclass
class CalcRuntimeError(Exception):
    kind: ErrorKind
    errmsg: str

    def __str__(self) -> str:
        return f"[Runtime error] {self.errmsg}"


class UnknownVariableError(KeyError):
    kind = ErrorKind.UNKNOWN_VARIABLE

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown variable: {self.name!r}"
