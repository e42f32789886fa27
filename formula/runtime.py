from formula.errors import CalcRuntimeError, ErrorKind, UnknownVariableError
from formula.expression import Constant, Expression, OperatorApplication, Variable, variables
from formula.operators import Arity


def calculate(expression: Expression) -> float:
    """Evaluates the tree with the current variable bindings.

    Nothing is cached between calls, so rebinding a variable and calling
    again reflects the new value.
    """
    if isinstance(expression, Constant):
        return expression.value
    elif isinstance(expression, Variable):
        if not expression.is_bound:
            raise CalcRuntimeError(ErrorKind.UNBOUND_VARIABLE, f"Variable not set: {expression.name!r}")
        return expression.value  # type: ignore
    elif isinstance(expression, OperatorApplication):
        operator = expression.operator
        if expression.right is None:
            raise CalcRuntimeError(ErrorKind.INCOMPLETE_EXPRESSION, f"Operator {operator.token!r} has no operand")
        right_res = calculate(expression.right)
        if operator.arity is Arity.UNARY:
            return operator.fn(right_res)  # type: ignore
        if expression.left is None:
            raise CalcRuntimeError(ErrorKind.INCOMPLETE_EXPRESSION, f"Operator {operator.token!r} has no left operand")
        left_res = calculate(expression.left)
        return operator.fn(left_res, right_res)  # type: ignore
    else:
        raise RuntimeError(f"Unexpected expression type: {expression}")


def evaluate(expression: Expression, bindings: dict[str, float]) -> float:
    """Binds the variables of ``expression`` found in ``bindings``, then calculates it"""
    handles = variables(expression)
    for name, value in bindings.items():
        if name not in handles:
            raise UnknownVariableError(name)
        handles[name].bind(value)
    return calculate(expression)
