import logging
import re
from typing import Optional

from formula.errors import UnknownVariableError
from formula.expression import Constant, Variable
from formula.operators import (
    DEFAULT_NAMED_CONSTANTS,
    DEFAULT_OPERATORS,
    Arity,
    BinaryTransform,
    Operator,
    Precedence,
    UnaryTransform,
)

logger = logging.getLogger(__name__)

BASE_VALID_CHARS = r"a-z0-9.()\s"
NAMED_CONSTANT_PATT = re.compile(r"[a-z]+")
# reserved even while the operator table is cleared, so defaults can always be reloaded
DEFAULT_OPERATOR_TOKENS = {operator.token for operator in DEFAULT_OPERATORS}


class ParserContext:
    """Operator table, named constants and the variable table of the last parse.

    Contexts are independent of each other; a single context must not be used
    by concurrent parses since ``parse`` resets its variable table.
    """

    def __init__(self, load_defaults: bool = True) -> None:
        self._unaries: dict[str, Operator] = dict()
        self._binaries: dict[str, Operator] = dict()
        self._named_constants: dict[str, Constant] = dict()
        self._variables: dict[str, Variable] = dict()
        self._invalid_char_patt: Optional[re.Pattern[str]] = None
        self._token_patt: Optional[re.Pattern[str]] = None
        if load_defaults:
            self.load_default_operators()
            self.reset_named_constants()

    # operators

    def operators(self) -> list[Operator]:
        return [*self._unaries.values(), *self._binaries.values()]

    def operator_tokens(self) -> set[str]:
        return set(self._unaries) | set(self._binaries)

    def unary_operator(self, token: str) -> Optional[Operator]:
        return self._unaries.get(token)

    def binary_operator(self, token: str) -> Optional[Operator]:
        return self._binaries.get(token)

    def add_operator(self, operator: Operator) -> bool:
        """Registers an operator or function, returns False if it conflicts with the table.

        Two operators may share a token only if one is unary and the other binary.
        No token may contain another token of a different length.
        """
        token = operator.token
        if not token:
            logger.debug("Rejecting operator with empty token")
            return False
        if operator in self.operators():
            return True
        if token != token.lower():
            logger.debug("Rejecting operator %r: uppercase letters in token", token)
            return False
        if re.search(r"[\s()]", token):
            logger.debug("Rejecting operator %r: whitespace or parenthesis in token", token)
            return False
        if token in self._named_constants:
            logger.debug("Rejecting operator %r: named constant with the same name exists", token)
            return False
        for known in self.operators():
            if known.arity is operator.arity and known.token == token:
                logger.debug("Rejecting operator %r: %s operator with this token exists", token, known.arity)
                return False
            if (known.token in token or token in known.token) and len(known.token) != len(token):
                logger.debug("Rejecting operator %r: overlaps with %r", token, known.token)
                return False

        table = self._unaries if operator.arity is Arity.UNARY else self._binaries
        table[token] = operator
        self._invalidate_patterns()
        return True

    def add_unary(self, token: str, fn: UnaryTransform, precedence: Precedence = Precedence.FUNC) -> bool:
        return self.add_operator(Operator(token=token, arity=Arity.UNARY, precedence=precedence, fn=fn))

    def add_binary(self, token: str, precedence: Precedence, fn: BinaryTransform) -> bool:
        return self.add_operator(Operator(token=token, arity=Arity.BINARY, precedence=precedence, fn=fn))

    def clear_operators(self) -> None:
        self._unaries.clear()
        self._binaries.clear()
        self._invalidate_patterns()

    def load_default_operators(self) -> None:
        self.clear_operators()
        for operator in DEFAULT_OPERATORS:
            if not self.add_operator(operator):
                raise RuntimeError(f"Default operator {operator} conflicts with the operator table")

    # named constants

    def named_constant(self, name: str) -> Optional[Constant]:
        return self._named_constants.get(name)

    def add_named_constant(self, name: str, value: float) -> bool:
        """Adds a constant that lives until ``reset_named_constants``.

        Re-adding an existing name succeeds only with the same value.
        """
        if name in self._named_constants:
            return self._named_constants[name].value == value
        if not NAMED_CONSTANT_PATT.fullmatch(name):
            logger.debug("Rejecting named constant %r: only lowercase letters are allowed", name)
            return False
        if name in self.operator_tokens() or name in DEFAULT_OPERATOR_TOKENS:
            logger.debug("Rejecting named constant %r: name is an operator token", name)
            return False
        self._named_constants[name] = Constant(value=float(value), name=name)
        self._token_patt = None
        return True

    def reset_named_constants(self) -> None:
        self._named_constants.clear()
        self._token_patt = None
        for name, value in DEFAULT_NAMED_CONSTANTS.items():
            self.add_named_constant(name, value)

    # variables

    def clear_variables(self) -> None:
        self._variables.clear()

    def intern_variable(self, name: str) -> Variable:
        if name not in self._variables:
            self._variables[name] = Variable(name)
        return self._variables[name]

    def variable_names(self) -> set[str]:
        return set(self._variables)

    def get_variable(self, name: str) -> Variable:
        if name not in self._variables:
            raise UnknownVariableError(name)
        return self._variables[name]

    def set_variable(self, name: str, value: float) -> None:
        self.get_variable(name).bind(value)

    def unset_all_variables(self) -> None:
        for variable in self._variables.values():
            variable.unbind()

    def get_named_value(self, name: str) -> Optional[float]:
        """Value of a bound variable or a named constant, None if there is none"""
        variable = self._variables.get(name)
        if variable is not None and variable.is_bound:
            return variable.value  # type: ignore
        constant = self._named_constants.get(name)
        if constant is not None:
            return constant.value
        return None

    # lexer support

    def known_tokens(self) -> set[str]:
        """Operator tokens and named constant names, everything the lexer splits out of words"""
        return self.operator_tokens() | set(self._named_constants)

    def invalid_char_pattern(self) -> re.Pattern[str]:
        """Matches any character that cannot appear in a normalized expression"""
        if self._invalid_char_patt is None:
            operator_chars = "".join(sorted(set("".join(self.operator_tokens()))))
            self._invalid_char_patt = re.compile(f"[^{BASE_VALID_CHARS}{re.escape(operator_chars)}]")
        return self._invalid_char_patt

    def token_pattern(self) -> Optional[re.Pattern[str]]:
        """Alternation of all operator and constant tokens, longest first"""
        if self._token_patt is None:
            tokens = sorted(self.known_tokens(), key=len, reverse=True)
            if not tokens:
                return None
            self._token_patt = re.compile("|".join(re.escape(t) for t in tokens))
        return self._token_patt

    def _invalidate_patterns(self) -> None:
        self._invalid_char_patt = None
        self._token_patt = None


DEFAULT_CONTEXT = ParserContext()
