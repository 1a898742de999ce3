"""
Condition Evaluator — restricted boolean expressions for branch edges.

An edge leaving a condition node carries a label such as::

    State['score'] > 0.5 && State['status'] == 'ok'

The expression is tokenized and parsed into a small typed AST and
evaluated structurally against the node's input, which is bound to
the workflow's class name (``State`` above). Nothing is compiled or
executed as code.

Supported syntax:
    * literals: numbers (optionally negative), 'single' / "double" quoted strings,
      true / false / null (and True / False / None)
    * the bound name, with ``['key']``, ``[0]`` and ``.key`` access
    * comparisons: == != > < >= <= (=== and !== are aliases)
    * boolean: && || ! (and / or / not), parentheses

``evaluate_condition`` is fail-closed: any parse or evaluation
problem yields ``False``.
"""

from __future__ import annotations

import math
import operator
import re
from dataclasses import dataclass
from functools import lru_cache
from logging import getLogger
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from flowbuilder.workflow.errors import ConditionSyntaxError

logger = getLogger(__name__)


# ============================================================================
# AST
# ============================================================================


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Name:
    name: str


@dataclass(frozen=True)
class FieldGet:
    target: "Expr"
    key: "Expr"


@dataclass(frozen=True)
class Compare:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class BoolOp:
    op: str  # "and" | "or"
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Not:
    operand: "Expr"


Expr = Union[Literal, Name, FieldGet, Compare, BoolOp, Not]


class ConditionEvaluationError(Exception):
    """Raised internally when an expression cannot be evaluated."""


# ============================================================================
# Tokenizer
# ============================================================================

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<number>\d+\.\d*|\.\d+|\d+)
  | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
  | (?P<name>[A-Za-z_$][A-Za-z0-9_$]*)
  | (?P<op>===|!==|==|!=|>=|<=|&&|\|\||[><!\[\]().-])
    """,
    re.VERBOSE,
)

_COMPARE_OPS: Dict[str, str] = {
    "==": "==",
    "===": "==",
    "!=": "!=",
    "!==": "!=",
    ">": ">",
    "<": "<",
    ">=": ">=",
    "<=": "<=",
}

_KEYWORD_LITERALS: Dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "True": True,
    "False": False,
    "None": None,
}

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", "'": "'", '"': '"'}

Token = Tuple[str, str]


def _unquote(raw: str) -> str:
    body = raw[1:-1]
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)


def tokenize(expression: str) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    while pos < len(expression):
        match = _TOKEN_RE.match(expression, pos)
        if match is None:
            raise ConditionSyntaxError(
                f"Unexpected character {expression[pos]!r} at position {pos}"
            )
        kind = match.lastgroup
        text = match.group()
        pos = match.end()
        if kind != "ws":
            tokens.append((kind, text))
    return tokens


# ============================================================================
# Parser
# ============================================================================


class _Parser:
    """Recursive-descent parser over the token list."""

    def __init__(self, tokens: List[Token]) -> None:
        self._tokens = tokens
        self._pos = 0

    def _peek(self) -> Optional[Token]:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _advance(self) -> Token:
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def _accept(self, *texts: str) -> Optional[str]:
        token = self._peek()
        if token is not None and token[1] in texts and token[0] in ("op", "name"):
            self._pos += 1
            return token[1]
        return None

    def _expect(self, text: str) -> None:
        if self._accept(text) is None:
            found = self._peek()
            raise ConditionSyntaxError(
                f"Expected {text!r} but found {found[1] if found else 'end of expression'!r}"
            )

    def parse(self) -> Expr:
        if not self._tokens:
            raise ConditionSyntaxError("Empty condition expression")
        expr = self._parse_or()
        if self._peek() is not None:
            raise ConditionSyntaxError(f"Unexpected token {self._peek()[1]!r}")
        return expr

    def _parse_or(self) -> Expr:
        left = self._parse_and()
        while self._accept("||", "or"):
            left = BoolOp("or", left, self._parse_and())
        return left

    def _parse_and(self) -> Expr:
        left = self._parse_not()
        while self._accept("&&", "and"):
            left = BoolOp("and", left, self._parse_not())
        return left

    def _parse_not(self) -> Expr:
        if self._accept("!", "not"):
            return Not(self._parse_not())
        return self._parse_comparison()

    def _parse_comparison(self) -> Expr:
        left = self._parse_operand()
        token = self._peek()
        if token is not None and token[0] == "op" and token[1] in _COMPARE_OPS:
            self._advance()
            right = self._parse_operand()
            return Compare(_COMPARE_OPS[token[1]], left, right)
        return left

    def _parse_operand(self) -> Expr:
        expr = self._parse_primary()
        while True:
            if self._accept("["):
                key = self._parse_or()
                self._expect("]")
                expr = FieldGet(expr, key)
            elif self._accept("."):
                token = self._peek()
                if token is None or token[0] != "name":
                    raise ConditionSyntaxError("Expected a field name after '.'")
                self._advance()
                expr = FieldGet(expr, Literal(token[1]))
            else:
                return expr

    def _parse_primary(self) -> Expr:
        token = self._peek()
        if token is None:
            raise ConditionSyntaxError("Unexpected end of expression")
        kind, text = token
        if kind == "number":
            self._advance()
            return Literal(float(text) if "." in text else int(text))
        if self._accept("-"):
            operand = self._parse_primary()
            if not isinstance(operand, Literal) or isinstance(operand.value, bool) \
                    or not isinstance(operand.value, (int, float)):
                raise ConditionSyntaxError("Unary '-' applies to number literals only")
            return Literal(-operand.value)
        if kind == "string":
            self._advance()
            return Literal(_unquote(text))
        if kind == "name":
            self._advance()
            if text in _KEYWORD_LITERALS:
                return Literal(_KEYWORD_LITERALS[text])
            return Name(text)
        if self._accept("("):
            expr = self._parse_or()
            self._expect(")")
            return expr
        raise ConditionSyntaxError(f"Unexpected token {text!r}")


@lru_cache(maxsize=256)
def parse_condition(expression: str) -> Expr:
    """Parse an expression into an AST. Raises ``ConditionSyntaxError``."""
    return _Parser(tokenize(expression)).parse()


# ============================================================================
# Evaluation
# ============================================================================

_ORDERING: Dict[str, Callable[[Any, Any], bool]] = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
}


def _truthy(value: Any) -> bool:
    # Containers are truthy even when empty, like object references.
    if value is None or value is False:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


def _get_field(target: Any, key: Any) -> Any:
    if target is None:
        raise ConditionEvaluationError(f"Cannot read field {key!r} of null")
    if isinstance(target, Mapping):
        try:
            if key not in target and isinstance(key, int) and not isinstance(key, bool):
                return target.get(str(key))
            return target.get(key)
        except TypeError as e:
            raise ConditionEvaluationError(f"Invalid field key {key!r}: {e}") from e
    if isinstance(target, Sequence) and not isinstance(target, (str, bytes)):
        if isinstance(key, int) and not isinstance(key, bool):
            return target[key] if -len(target) <= key < len(target) else None
        if key == "length":
            return len(target)
        return None
    if isinstance(target, str) and key == "length":
        return len(target)
    raise ConditionEvaluationError(
        f"Cannot read field {key!r} of {type(target).__name__}"
    )


def _compare(op: str, left: Any, right: Any) -> bool:
    if op == "==":
        return left == right
    if op == "!=":
        return left != right
    if left is None or right is None:
        return False
    try:
        return bool(_ORDERING[op](left, right))
    except TypeError:
        return False


def _eval(node: Expr, scope: Mapping[str, Any]) -> Any:
    if isinstance(node, Literal):
        return node.value
    if isinstance(node, Name):
        if node.name not in scope:
            raise ConditionEvaluationError(f"Unknown name {node.name!r}")
        return scope[node.name]
    if isinstance(node, FieldGet):
        return _get_field(_eval(node.target, scope), _eval(node.key, scope))
    if isinstance(node, Compare):
        return _compare(node.op, _eval(node.left, scope), _eval(node.right, scope))
    if isinstance(node, BoolOp):
        left = _eval(node.left, scope)
        if node.op == "and":
            return _eval(node.right, scope) if _truthy(left) else left
        return left if _truthy(left) else _eval(node.right, scope)
    if isinstance(node, Not):
        return not _truthy(_eval(node.operand, scope))
    raise ConditionEvaluationError(f"Unsupported node {type(node).__name__}")


def evaluate_condition(expression: str, data: Any, bound_name: str) -> bool:
    """Evaluate ``expression`` with ``data`` bound to ``bound_name``.

    Never raises. Returns ``False`` for empty, malformed or failing
    expressions.
    """
    if not expression or not expression.strip():
        return False
    try:
        tree = parse_condition(expression.strip())
        return _truthy(_eval(tree, {bound_name: data}))
    except ConditionSyntaxError as e:
        logger.warning(f"Invalid condition {expression!r}: {e}")
        return False
    except (ConditionEvaluationError, RecursionError) as e:
        logger.debug(f"Condition {expression!r} evaluated to false: {e}")
        return False


def default_condition_label(class_name: str) -> str:
    """Label seeded onto new edges leaving a condition node."""
    return f"{class_name}['value'] > 0"
