import enum
import re
from dataclasses import dataclass

from formula.context import ParserContext
from formula.errors import ErrorKind, ParserError
from formula.utils import PrintableEnum

NUMBER_PATT = re.compile(r"[0-9]+\.?[0-9]*")


class TokenType(PrintableEnum):
    NUMBER = enum.auto()
    OPERATOR = enum.auto()
    CONSTANT = enum.auto()
    NAME = enum.auto()
    BRACKET_OPEN = enum.auto()
    BRACKET_CLOSE = enum.auto()


BRACKETS = {
    "(": TokenType.BRACKET_OPEN,
    ")": TokenType.BRACKET_CLOSE,
}


@dataclass
class Token:
    type: TokenType
    lexeme: str
    idx: int  # offset in the normalized expression

    def __str__(self) -> str:
        return f"<{self.type}>{self.lexeme}"


def _separated(prev: TokenType, curr: TokenType) -> bool:
    return prev not in BRACKETS.values() and curr not in BRACKETS.values()


def _append_token(tokens: list[Token], type_: TokenType, lexeme: str) -> None:
    if tokens:
        prev = tokens[-1]
        idx = prev.idx + len(prev.lexeme) + (1 if _separated(prev.type, type_) else 0)
    else:
        idx = 0
    tokens.append(Token(type=type_, lexeme=lexeme, idx=idx))


def tokenize(code: str, context: ParserContext) -> list[Token]:
    """Splits lowercased ``code`` into tokens in a single pass.

    Registered operator and constant tokens are recognized anywhere, even
    inside words ("2xpi" => 2 x pi); the longest registered token wins.
    Whatever is left between recognized tokens, whitespace and parentheses
    becomes a NAME.
    """
    code = code.lower()
    token_patt = context.token_pattern()
    operator_tokens = context.operator_tokens()
    tokens: list[Token] = []
    name_start_idx = None
    i = 0
    while i < len(code):
        registered = token_patt.match(code, i) if token_patt is not None else None
        number = NUMBER_PATT.match(code, i) if registered is None else None
        is_separator = code[i].isspace() or code[i] in BRACKETS
        if name_start_idx is not None and (registered or number or is_separator):
            _append_token(tokens, TokenType.NAME, code[name_start_idx:i])
            name_start_idx = None

        if registered is not None:
            lexeme = registered.group()
            _append_token(tokens, TokenType.OPERATOR if lexeme in operator_tokens else TokenType.CONSTANT, lexeme)
            i = registered.end()
        elif number is not None:
            _append_token(tokens, TokenType.NUMBER, number.group())
            i = number.end()
        else:
            if code[i] in BRACKETS:
                _append_token(tokens, BRACKETS[code[i]], code[i])
            elif not code[i].isspace() and name_start_idx is None:
                name_start_idx = i
            i += 1

    if name_start_idx is not None:
        _append_token(tokens, TokenType.NAME, code[name_start_idx:])

    return tokens


def untokenize(tokens: list[Token]) -> str:
    parts: list[str] = []
    for i, token in enumerate(tokens):
        if i > 0 and _separated(tokens[i - 1].type, token.type):
            parts.append(" ")
        parts.append(token.lexeme)
    return "".join(parts)


def normalize(code: str, context: ParserContext) -> str:
    """Lowercased expression with exactly one space between atoms and none around parentheses

    "  A  +(b*3.44^2mgh-1)" => "a +(b * 3.44 ^ 2 mgh - 1)"
    """
    return untokenize(tokenize(code, context))


def check_characters(normalized: str, context: ParserContext) -> None:
    invalid = context.invalid_char_pattern().search(normalized)
    if invalid is not None:
        raise ParserError(
            ErrorKind.INVALID_CHARACTER,
            f"Invalid character: {invalid.group()!r}",
            code=normalized,
            error_char_idx=invalid.start(),
        )


def check_parentheses(normalized: str) -> None:
    depth = 0
    for i, char in enumerate(normalized):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if depth < 0:
            raise ParserError(
                ErrorKind.UNBALANCED_PARENTHESES, "Unmatched closing parenthesis", code=normalized, error_char_idx=i
            )
    if depth > 0:
        raise ParserError(
            ErrorKind.UNBALANCED_PARENTHESES,
            "Unmatched opening parenthesis",
            code=normalized,
            error_char_idx=len(normalized),
        )
