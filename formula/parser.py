import logging
import re
from typing import Optional

from formula.context import DEFAULT_CONTEXT, ParserContext
from formula.errors import ErrorKind, ParserError
from formula.expression import Constant, Expression, OperatorApplication, is_complete, to_prefix_string
from formula.operators import Arity, Operator, Precedence
from formula.tokenizer import Token, TokenType, check_characters, check_parentheses, tokenize, untokenize

logger = logging.getLogger(__name__)

VARIABLE_NAME_PATT = re.compile(r"[a-z]+")

# expression paired with the offset of the token it was built from
ChainLink = tuple[Expression, int]


def parse(code: str, context: Optional[ParserContext] = None) -> Expression:
    """Parses ``code`` into an expression tree.

    Resets the variable table of the context: variables of the returned tree
    are fresh and unbound.
    """
    if context is None:
        context = DEFAULT_CONTEXT
    context.clear_variables()

    tokens = tokenize(code, context)
    normalized = untokenize(tokens)
    logger.debug("Parsing %r", normalized)
    check_characters(normalized, context)
    check_parentheses(normalized)

    expression = _parse_tokens(tokens, normalized, context, group_end_idx=len(normalized))
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Parsed %r as %s", normalized, to_prefix_string(expression))
    return expression


def _parse_tokens(tokens: list[Token], code: str, context: ParserContext, group_end_idx: int) -> Expression:
    """Parses a parenthesis-balanced token list; ``group_end_idx`` is reported for an empty list"""
    if not tokens:
        raise ParserError(ErrorKind.EMPTY_EXPRESSION, "Empty expression", code=code, error_char_idx=group_end_idx)

    chain: list[ChainLink] = []
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if token.type is TokenType.BRACKET_OPEN:
            closing_idx = _closing_bracket_idx(tokens, i)
            group = _parse_tokens(tokens[i + 1 : closing_idx], code, context, group_end_idx=tokens[closing_idx].idx)
            chain.append((group, token.idx))
            i = closing_idx + 1
            continue

        if token.type is TokenType.NUMBER:
            chain.append((Constant(float(token.lexeme)), token.idx))
        elif token.type is TokenType.CONSTANT:
            constant = context.named_constant(token.lexeme)
            if constant is None:
                raise RuntimeError(f"Internal error, unknown named constant {token.lexeme!r}")
            chain.append((constant, token.idx))
        elif token.type is TokenType.OPERATOR:
            operator = _select_operator(token, chain, context)
            chain.append((OperatorApplication(operator), token.idx))
        elif token.type is TokenType.NAME:
            if not VARIABLE_NAME_PATT.fullmatch(token.lexeme):
                raise ParserError(
                    ErrorKind.INVALID_TOKEN,
                    f"Invalid variable name: {token.lexeme!r}",
                    code=code,
                    error_char_idx=token.idx,
                )
            chain.append((context.intern_variable(token.lexeme), token.idx))
        else:
            raise ParserError(
                ErrorKind.UNBALANCED_PARENTHESES, "Unmatched closing parenthesis", code=code, error_char_idx=token.idx
            )
        i += 1

    _reduce(chain, code)

    if len(chain) > 1:
        fragments = " ".join(f"{{{to_prefix_string(expr)}}}" for expr, _ in chain)
        raise ParserError(
            ErrorKind.UNCOLLAPSED_EXPRESSION,
            f"Uncollapsed expression: [ {fragments} ]",
            code=code,
            error_char_idx=chain[1][1],
        )
    return chain[0][0]


def _closing_bracket_idx(tokens: list[Token], open_idx: int) -> int:
    bracket_count = 1
    j = open_idx + 1
    while j < len(tokens):
        if tokens[j].type is TokenType.BRACKET_OPEN:
            bracket_count += 1
        elif tokens[j].type is TokenType.BRACKET_CLOSE:
            bracket_count -= 1
            if bracket_count == 0:
                return j
        j += 1
    raise RuntimeError("Internal error, unclosed bracket passed the parenthesis check")


def _select_operator(token: Token, chain: list[ChainLink], context: ParserContext) -> Operator:
    """Picks the unary or binary meaning of an operator token.

    A token registered with both arities is unary at the start of an
    expression or after an operator still waiting for operands ("2 * -1"),
    and binary after a complete expression ("a - 2").
    """
    unary = context.unary_operator(token.lexeme)
    binary = context.binary_operator(token.lexeme)
    if unary is not None and binary is not None:
        if not chain:
            return unary
        prev, _ = chain[-1]
        return binary if is_complete(prev) else unary
    elif unary is not None:
        return unary
    elif binary is not None:
        return binary
    else:
        raise RuntimeError(f"Internal error, unknown operator {token.lexeme!r}")


def _pending_operators(chain: list[ChainLink], precedence: Precedence) -> list[OperatorApplication]:
    pending = [
        expr
        for expr, _ in chain
        if isinstance(expr, OperatorApplication) and expr.operator.precedence is precedence and not is_complete(expr)
    ]
    if precedence is Precedence.FUNC:
        # unary operators compose right to left: "exp sin x" => exp(sin(x))
        pending.reverse()
    return pending


def _reduce(chain: list[ChainLink], code: str) -> None:
    """Folds operators into their neighbours, from the highest precedence level to the lowest"""
    for precedence in Precedence.descending():
        for node in _pending_operators(chain, precedence):
            pos = next(k for k, (expr, _) in enumerate(chain) if expr is node)
            token = node.operator.token
            node_idx = chain[pos][1]

            if pos == len(chain) - 1:
                raise ParserError(
                    ErrorKind.MISSING_OPERAND,
                    f"Operator {token!r} has no right operand",
                    code=code,
                    error_char_idx=node_idx,
                )
            right, right_idx = chain[pos + 1]
            if not is_complete(right):
                raise ParserError(
                    ErrorKind.INCOMPLETE_OPERAND,
                    f"Right operand of {token!r} is an operator without operands",
                    code=code,
                    error_char_idx=right_idx,
                )

            if node.operator.arity is Arity.UNARY:
                node.right = right
                chain[pos : pos + 2] = [(node, node_idx)]
                continue

            if pos == 0:
                raise ParserError(
                    ErrorKind.MISSING_OPERAND,
                    f"Operator {token!r} has no left operand",
                    code=code,
                    error_char_idx=node_idx,
                )
            left, left_idx = chain[pos - 1]
            if not is_complete(left):
                raise ParserError(
                    ErrorKind.INCOMPLETE_OPERAND,
                    f"Left operand of {token!r} is an operator without operands",
                    code=code,
                    error_char_idx=left_idx,
                )
            node.left = left
            node.right = right
            chain[pos - 1 : pos + 2] = [(node, node_idx)]
