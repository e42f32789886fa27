import logging

import pytest

from formula.context import ParserContext
from formula.errors import ErrorKind, ParserError
from formula.expression import Constant, OperatorApplication, Variable, is_complete, to_prefix_string
from formula.parser import parse


@pytest.mark.parametrize(
    "code, expected_prefix",
    [
        pytest.param("a - 2", "-(a,2.0)"),
        pytest.param("-a", "-(a)"),
        pytest.param("2 * -1", "*(2.0,-(1.0))"),
        pytest.param("sin -x", "sin(-(x))"),
        pytest.param("-x^2", "-(^(x,2.0))"),
        pytest.param("exp sin x", "exp(sin(x))"),
        pytest.param("sin x ^ 2", "sin(^(x,2.0))"),
        pytest.param("(a-1)*2", "*(-(a,1.0),2.0)"),
        pytest.param("1 - 2 - 3", "-(-(1.0,2.0),3.0)"),
        pytest.param("2*pi", "*(2.0,pi)"),
        pytest.param("a - - b", "-(a,-(b))"),
        pytest.param("(1+2) - 3", "-(+(1.0,2.0),3.0)"),
        pytest.param("+x", "+(x)"),
    ],
)
def test_tree_shape(code: str, expected_prefix: str) -> None:
    assert to_prefix_string(parse(code, ParserContext())) == expected_prefix


@pytest.mark.parametrize(
    "code, expected_kind",
    [
        pytest.param("", ErrorKind.EMPTY_EXPRESSION),
        pytest.param("   ", ErrorKind.EMPTY_EXPRESSION),
        pytest.param("()", ErrorKind.EMPTY_EXPRESSION),
        pytest.param("1 + ()", ErrorKind.EMPTY_EXPRESSION),
        pytest.param("1 $ 2", ErrorKind.INVALID_CHARACTER),
        pytest.param("a_b", ErrorKind.INVALID_CHARACTER),
        pytest.param("1 , 2", ErrorKind.INVALID_CHARACTER),
        pytest.param("sin cos) x", ErrorKind.UNBALANCED_PARENTHESES),
        pytest.param("(1 + 2", ErrorKind.UNBALANCED_PARENTHESES),
        pytest.param(")(", ErrorKind.UNBALANCED_PARENTHESES),
        pytest.param("(sin cos) x", ErrorKind.MISSING_OPERAND),
        pytest.param("1 +", ErrorKind.MISSING_OPERAND),
        pytest.param("* 2", ErrorKind.MISSING_OPERAND),
        pytest.param("a^sin x", ErrorKind.INCOMPLETE_OPERAND),
        pytest.param("2^-3", ErrorKind.INCOMPLETE_OPERAND),
        pytest.param("1 * / 2", ErrorKind.INCOMPLETE_OPERAND),
        pytest.param("2pi", ErrorKind.UNCOLLAPSED_EXPRESSION),
        pytest.param("2x + 1", ErrorKind.UNCOLLAPSED_EXPRESSION),
        pytest.param("2 sin x", ErrorKind.UNCOLLAPSED_EXPRESSION),
        pytest.param("a b", ErrorKind.UNCOLLAPSED_EXPRESSION),
        pytest.param(".5", ErrorKind.INVALID_TOKEN),
    ],
)
def test_parser_errors(code: str, expected_kind: ErrorKind) -> None:
    with pytest.raises(ParserError) as exc_info:
        parse(code, ParserContext())
    assert exc_info.value.kind is expected_kind


def test_error_position() -> None:
    with pytest.raises(ParserError) as exc_info:
        parse("1 + 2 )", ParserContext())
    assert exc_info.value.code == "1 + 2)"
    assert exc_info.value.error_char_idx == 5
    assert str(exc_info.value).splitlines() == [
        "[Parser error] Unmatched closing parenthesis",
        "1 + 2)",
        "     ^",
    ]


def test_unmatched_opening_parenthesis_reported_at_end() -> None:
    with pytest.raises(ParserError) as exc_info:
        parse("((1)", ParserContext())
    assert exc_info.value.error_char_idx == len("((1)")


def test_uncollapsed_expression_lists_fragments() -> None:
    with pytest.raises(ParserError) as exc_info:
        parse("a sin b", ParserContext())
    assert exc_info.value.errmsg == "Uncollapsed expression: [ {a} {sin(b)} ]"


def test_nodes_are_complete() -> None:
    expression = parse("1 + sin(x * 2)", ParserContext())
    assert isinstance(expression, OperatorApplication)
    assert is_complete(expression)
    assert isinstance(expression.left, Constant)
    assert isinstance(expression.right, OperatorApplication)
    assert isinstance(expression.right.right, OperatorApplication)
    assert isinstance(expression.right.right.left, Variable)


def test_variables_are_interned() -> None:
    expression = parse("a + b - a", ParserContext())
    assert isinstance(expression, OperatorApplication)
    assert isinstance(expression.left, OperatorApplication)
    assert expression.right is expression.left.left


def test_parse_resets_variable_table() -> None:
    context = ParserContext()
    first = parse("a + b", context)
    assert context.variable_names() == {"a", "b"}
    second = parse("c", context)
    assert context.variable_names() == {"c"}
    assert isinstance(first, OperatorApplication)
    assert isinstance(second, Variable)
    assert second is context.get_variable("c")


def test_no_operators_known() -> None:
    context = ParserContext()
    context.clear_operators()
    with pytest.raises(ParserError) as exc_info:
        parse("1 + 1", context)
    assert exc_info.value.kind is ErrorKind.INVALID_CHARACTER

    with pytest.raises(ParserError):
        parse("sin x", context)


def test_default_context_is_used() -> None:
    assert to_prefix_string(parse("1 + x")) == "+(1.0,x)"


def test_parse_logs_result_at_debug(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG, logger="formula.parser"):
        parse("1+X", ParserContext())
    parser_messages = [record.getMessage() for record in caplog.records if record.name == "formula.parser"]
    assert parser_messages == ["Parsing '1 + x'", "Parsed '1 + x' as +(1.0,x)"]

    caplog.clear()
    with caplog.at_level(logging.INFO, logger="formula.parser"):
        parse("1+X", ParserContext())
    assert not [record for record in caplog.records if record.name == "formula.parser"]
