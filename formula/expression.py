import decimal
import enum
from dataclasses import dataclass
from typing import Optional

from formula.operators import Arity, Operator
from formula.utils import PrintableEnum


class Unset(PrintableEnum):
    UNSET = enum.auto()


UNSET = Unset.UNSET


@dataclass(frozen=True)
class Constant:
    value: float
    name: Optional[str] = None


@dataclass(eq=False)
class Variable:
    """Mutable cell shared by every node of a tree that mentions ``name``"""

    name: str
    value: float | Unset = UNSET

    @property
    def is_bound(self) -> bool:
        return self.value is not UNSET

    def bind(self, value: float) -> None:
        self.value = float(value)

    def unbind(self) -> None:
        self.value = UNSET


@dataclass
class OperatorApplication:
    """Operator with its operands; a unary operand is kept in ``right``"""

    operator: Operator
    left: Optional["Expression"] = None
    right: Optional["Expression"] = None


Expression = Constant | Variable | OperatorApplication


def is_complete(expression: Expression) -> bool:
    if isinstance(expression, (Constant, Variable)):
        return True
    elif isinstance(expression, OperatorApplication):
        if expression.right is None or not is_complete(expression.right):
            return False
        if expression.operator.arity is Arity.BINARY:
            return expression.left is not None and is_complete(expression.left)
        return True
    else:
        raise RuntimeError(f"Unexpected expression type: {expression}")


def variables(expression: Expression) -> dict[str, Variable]:
    """Interned variable handles reachable from the expression, by name"""
    result: dict[str, Variable] = {}
    stack: list[Optional[Expression]] = [expression]
    while stack:
        node = stack.pop()
        if node is None or isinstance(node, Constant):
            continue
        elif isinstance(node, Variable):
            result.setdefault(node.name, node)
        elif isinstance(node, OperatorApplication):
            stack.append(node.right)
            stack.append(node.left)
        else:
            raise RuntimeError(f"Unexpected expression type: {node}")
    return result


def free_variables(expression: Expression) -> set[str]:
    return set(variables(expression))


def _format_value(value: float) -> str:
    """Shortest round-tripping digits, never in exponent notation: 1e-05 => 0.00001"""
    text = repr(float(value))
    if "e" in text:
        text = format(decimal.Decimal(text), "f")
    return text


def to_prefix_string(expression: Optional[Expression]) -> str:
    """Function-call style rendering, e.g. (a-1)*2 => *(-(a,1.0),2.0)

    Missing operands of incomplete nodes are rendered as "?".
    """
    if expression is None:
        return "?"
    elif isinstance(expression, Constant):
        return expression.name if expression.name is not None else _format_value(expression.value)
    elif isinstance(expression, Variable):
        return expression.name
    elif isinstance(expression, OperatorApplication):
        token = expression.operator.token
        if expression.operator.arity is Arity.UNARY:
            return f"{token}({to_prefix_string(expression.right)})"
        return f"{token}({to_prefix_string(expression.left)},{to_prefix_string(expression.right)})"
    else:
        raise RuntimeError(f"Unexpected expression type: {expression}")


def to_infix_string(expression: Optional[Expression]) -> str:
    """Fully parenthesized infix rendering, parseable back with the same operators

    Infinite and nan constants have no literal form and do not parse back.
    """
    if expression is None:
        return "?"
    elif isinstance(expression, (Constant, Variable)):
        return to_prefix_string(expression)
    elif isinstance(expression, OperatorApplication):
        token = expression.operator.token
        if expression.operator.arity is Arity.UNARY:
            return f"{token}({to_infix_string(expression.right)})"
        return f"({to_infix_string(expression.left)} {token} {to_infix_string(expression.right)})"
    else:
        raise RuntimeError(f"Unexpected expression type: {expression}")
