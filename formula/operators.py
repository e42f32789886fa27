import enum
import math
from dataclasses import dataclass
from typing import Callable, Iterator, Union

from formula.utils import PrintableEnum

UnaryTransform = Callable[[float], float]
BinaryTransform = Callable[[float, float], float]


class Arity(PrintableEnum):
    UNARY = enum.auto()
    BINARY = enum.auto()


class Precedence(PrintableEnum):
    """Operators are reduced from the highest level to the lowest.

    Every unary operator and function should use FUNC, otherwise composition
    without parentheses ("exp sin x") stops working.
    """

    ADD = 1
    MUL = 10
    FUNC = 20
    POW = 30

    @classmethod
    def descending(cls) -> Iterator["Precedence"]:
        return iter(sorted(cls, key=lambda p: p.value, reverse=True))


@dataclass(frozen=True)
class Operator:
    token: str
    arity: Arity
    precedence: Precedence
    fn: Union[UnaryTransform, BinaryTransform]

    def __str__(self) -> str:
        return f"<{self.arity} {self.precedence}>{self.token}"


DEFAULT_OPERATORS: list[Operator] = []


def default_operator(token: str, arity: Arity, precedence: Precedence):
    def decorator(fn):
        DEFAULT_OPERATORS.append(Operator(token=token, arity=arity, precedence=precedence, fn=fn))
        return fn

    return decorator


def _is_odd_integer(x: float) -> bool:
    return x.is_integer() and x % 2 == 1


@default_operator("+", Arity.BINARY, Precedence.ADD)
def add_(x: float, y: float) -> float:
    return x + y


@default_operator("-", Arity.BINARY, Precedence.ADD)
def sub_(x: float, y: float) -> float:
    return x - y


@default_operator("*", Arity.BINARY, Precedence.MUL)
def mul_(x: float, y: float) -> float:
    return x * y


@default_operator("/", Arity.BINARY, Precedence.MUL)
def div_(x: float, y: float) -> float:
    if y == 0:
        if x == 0 or math.isnan(x):
            return math.nan
        return math.copysign(math.inf, x) * math.copysign(1.0, y)
    return x / y


@default_operator("^", Arity.BINARY, Precedence.POW)
def pow_(x: float, y: float) -> float:
    try:
        return math.pow(x, y)
    except OverflowError:
        return -math.inf if x < 0 and _is_odd_integer(y) else math.inf
    except ValueError:
        if x == 0:
            # 0 to a negative power
            return math.copysign(math.inf, x) if _is_odd_integer(y) else math.inf
        # negative base, fractional exponent
        return math.nan


@default_operator("-", Arity.UNARY, Precedence.FUNC)
def neg_(x: float) -> float:
    return -x


@default_operator("+", Arity.UNARY, Precedence.FUNC)
def pos_(x: float) -> float:
    return x


@default_operator("ln", Arity.UNARY, Precedence.FUNC)
def ln_(x: float) -> float:
    if x == 0:
        return -math.inf
    if x < 0:
        return math.nan
    return math.log(x)


@default_operator("exp", Arity.UNARY, Precedence.FUNC)
def exp_(x: float) -> float:
    try:
        return math.exp(x)
    except OverflowError:
        return math.inf


@default_operator("sin", Arity.UNARY, Precedence.FUNC)
def sin_(x: float) -> float:
    return math.sin(x) if math.isfinite(x) or math.isnan(x) else math.nan


@default_operator("cos", Arity.UNARY, Precedence.FUNC)
def cos_(x: float) -> float:
    return math.cos(x) if math.isfinite(x) or math.isnan(x) else math.nan


@default_operator("tg", Arity.UNARY, Precedence.FUNC)
def tg_(x: float) -> float:
    return math.tan(x) if math.isfinite(x) or math.isnan(x) else math.nan


@default_operator("sqrt", Arity.UNARY, Precedence.FUNC)
def sqrt_(x: float) -> float:
    return math.sqrt(x) if x >= 0 or math.isnan(x) else math.nan


@default_operator("abs", Arity.UNARY, Precedence.FUNC)
def abs_(x: float) -> float:
    return math.fabs(x)


DEFAULT_NAMED_CONSTANTS: dict[str, float] = {
    "pi": math.pi,
    "e": math.e,
}
