"""Truthy expressions: boolean expressions whose leaves go through is_truthy().

An expression such as ``user && !banned || admin`` is parsed once, rejecting
anything other than names, ``!``, ``&&``, ``||`` and parentheses, and can then
be rewritten to Python source or evaluated against bound values.
"""

from __future__ import annotations

import keyword
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from truthy._core import is_truthy
from truthy._tracing import TraceHook, get_trace_hook

logger = logging.getLogger(__name__)


class ExpressionError(ValueError):
    """
    Raised when a truthy expression cannot be compiled.

    Attributes:
        category: What was rejected: "call", "access", "index", "literal",
            "operator", "syntax" or "unknown_name"
        token: The offending text, if any
        position: Character offset of the offending text, if known
    """

    def __init__(
        self,
        message: str,
        *,
        category: str,
        token: str | None = None,
        position: int | None = None,
    ):
        self.category = category
        self.token = token
        self.position = position
        if token is not None and position is not None:
            message = f"{message} (got {token!r} at position {position})"
        super().__init__(message)


_REJECTIONS = {
    "call": "function calls are not permitted inside a truthy expression; "
    "bind the result to a name first",
    "access": "field and method access is not permitted inside a truthy expression; "
    "bind the value to a name first",
    "index": "indexing is not permitted inside a truthy expression; "
    "bind the value to a name first",
    "literal": "literals are not permitted inside a truthy expression; "
    "bind the value to a name first",
    "operator": "only '!', '&&' and '||' operators are permitted inside a truthy expression",
}

_OPERATOR_CHARS = set("+-*/%^~<>=,@:;?&|")
_LITERAL_WORDS = {"true", "false", "none"}


# =============================================================================
# Parser
# =============================================================================


class ExpressionParser:
    """
    Parser for truthy expressions.

    Operators (by precedence, lowest to highest):
        ||, or      - Either side truthy
        &&, and     - Both sides truthy
        !, not      - Negation

    Grouping:
        ( )         - Override precedence

    Leaves are bare names. Calls, attribute access, indexing, literals and
    any other operator are rejected with ExpressionError.

    Multi-line expressions are supported (newlines are ignored) and ``#``
    starts a comment that runs to the end of the line.

    Examples:
        logged_in && !banned
        logged_in and not banned
        (has_email || has_phone) && verified
    """

    # Token types
    AND = "AND"
    OR = "OR"
    NOT = "NOT"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    IDENT = "IDENT"
    EOF = "EOF"

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.tokens: list[tuple[str, str, int]] = []
        self.token_pos = 0
        self._tokenize()

    def _reject(self, category: str, token: str, position: int) -> ExpressionError:
        return ExpressionError(
            _REJECTIONS[category], category=category, token=token, position=position
        )

    def _tokenize(self) -> None:
        """Convert text into tokens, rejecting anything outside the grammar."""
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            start = self.pos

            # Skip whitespace and newlines
            if ch.isspace():
                self.pos += 1
                continue

            # Skip comments
            if ch == "#":
                while self.pos < len(text) and text[self.pos] != "\n":
                    self.pos += 1
                continue

            two = text[self.pos : self.pos + 2]
            if two == "&&":
                self.tokens.append((self.AND, two, start))
                self.pos += 2
            elif two == "||":
                self.tokens.append((self.OR, two, start))
                self.pos += 2
            elif two == "!=":
                raise self._reject("operator", two, start)
            elif ch == "!":
                self.tokens.append((self.NOT, ch, start))
                self.pos += 1
            elif ch == "(":
                self.tokens.append((self.LPAREN, ch, start))
                self.pos += 1
            elif ch == ")":
                self.tokens.append((self.RPAREN, ch, start))
                self.pos += 1
            elif ch == ".":
                if self.pos + 1 < len(text) and text[self.pos + 1].isdigit():
                    raise self._reject("literal", self._read_number(), start)
                raise self._reject("access", ch, start)
            elif ch in "[]":
                raise self._reject("index", ch, start)
            elif ch in "\"'" or ch in "{}":
                raise self._reject("literal", ch, start)
            elif ch.isdigit():
                raise self._reject("literal", self._read_number(), start)
            elif ch in _OPERATOR_CHARS:
                raise self._reject("operator", ch, start)
            elif ch.isalpha() or ch == "_":
                self._add_word(self._read_ident(), start)
            else:
                raise ExpressionError(
                    "unexpected character in truthy expression",
                    category="syntax",
                    token=ch,
                    position=start,
                )

        self.tokens.append((self.EOF, "", len(text)))

    def _add_word(self, ident: str, start: int) -> None:
        if not ident.isidentifier():
            raise ExpressionError(
                "names in a truthy expression must be valid Python identifiers",
                category="syntax",
                token=ident,
                position=start,
            )
        lower = ident.lower()
        if lower == "and":
            self.tokens.append((self.AND, ident, start))
        elif lower == "or":
            self.tokens.append((self.OR, ident, start))
        elif lower == "not":
            self.tokens.append((self.NOT, ident, start))
        elif lower in _LITERAL_WORDS:
            raise self._reject("literal", ident, start)
        elif keyword.iskeyword(ident):
            raise ExpressionError(
                "reserved words cannot be used as names in a truthy expression",
                category="syntax",
                token=ident,
                position=start,
            )
        elif self._next_char() == "(":
            raise self._reject("call", f"{ident}(", start)
        else:
            self.tokens.append((self.IDENT, ident, start))

    def _next_char(self) -> str:
        """Next non-whitespace character after the current position."""
        pos = self.pos
        while pos < len(self.text) and self.text[pos].isspace():
            pos += 1
        return self.text[pos] if pos < len(self.text) else ""

    def _read_number(self) -> str:
        """Read a numeric literal (only used to report it)."""
        start = self.pos
        while self.pos < len(self.text) and (
            self.text[self.pos].isalnum() or self.text[self.pos] in "._"
        ):
            self.pos += 1
        return self.text[start : self.pos]

    def _read_ident(self) -> str:
        """Read an identifier."""
        start = self.pos
        while self.pos < len(self.text) and (
            self.text[self.pos].isalnum() or self.text[self.pos] == "_"
        ):
            self.pos += 1
        return self.text[start : self.pos]

    def _peek(self) -> tuple[str, str, int]:
        """Look at current token without consuming."""
        return self.tokens[self.token_pos]

    def _consume(self) -> tuple[str, str, int]:
        """Consume and return current token."""
        token = self.tokens[self.token_pos]
        self.token_pos += 1
        return token

    def _syntax_error(self, message: str, token: tuple[str, str, int]) -> ExpressionError:
        kind, value, position = token
        if kind == self.EOF:
            return ExpressionError(
                f"{message}, but the expression ended", category="syntax", position=position
            )
        return ExpressionError(message, category="syntax", token=value, position=position)

    @property
    def names(self) -> tuple[str, ...]:
        """Leaf names in order of first appearance."""
        return tuple(dict.fromkeys(v for k, v, _ in self.tokens if k == self.IDENT))

    def parse(self) -> dict | str:
        """
        Parse expression and return its tree as a plain structure.

        Grammar:
            expr     = or_expr
            or_expr  = and_expr (('||' | 'OR') and_expr)*
            and_expr = not_expr (('&&' | 'AND') not_expr)*
            not_expr = ('!' | 'NOT') not_expr | primary
            primary  = IDENT | '(' expr ')'
        """
        if self._peek()[0] == self.EOF:
            raise ExpressionError("empty truthy expression", category="syntax")

        result = self._parse_or()
        token = self._peek()
        if token[0] == self.RPAREN:
            raise self._syntax_error("unbalanced ')'", token)
        if token[0] != self.EOF:
            raise self._syntax_error("expected '&&', '||' or end of expression", token)
        return result

    def _parse_or(self) -> dict | str:
        """Parse OR expression."""
        items = [self._parse_and()]
        while self._peek()[0] == self.OR:
            self._consume()
            items.append(self._parse_and())

        if len(items) == 1:
            return items[0]
        return {"or": items}

    def _parse_and(self) -> dict | str:
        """Parse AND expression."""
        items = [self._parse_not()]
        while self._peek()[0] == self.AND:
            self._consume()
            items.append(self._parse_not())

        if len(items) == 1:
            return items[0]
        return {"and": items}

    def _parse_not(self) -> dict | str:
        """Parse NOT expression (highest precedence)."""
        if self._peek()[0] == self.NOT:
            self._consume()
            return {"not": self._parse_not()}  # Allow chained NOT
        return self._parse_primary()

    def _parse_primary(self) -> dict | str:
        """Parse primary expression (name or grouped expr)."""
        token = self._peek()

        if token[0] == self.LPAREN:
            self._consume()
            expr = self._parse_or()
            if self._peek()[0] != self.RPAREN:
                raise self._syntax_error(
                    f"expected ')' to close '(' at position {token[2]}", self._peek()
                )
            self._consume()
            return expr

        if token[0] == self.IDENT:
            return self._consume()[1]

        raise self._syntax_error("expected a name or '('", token)

    def rewrite(self, predicate: str = "is_truthy") -> str:
        """
        Rewrite the tokens as Python source, wrapping every leaf in a call
        to ``predicate``. Grouping is kept exactly as written.
        """
        pieces: list[str] = []
        for kind, value, _ in self.tokens:
            if kind == self.IDENT:
                pieces.append(f"{predicate}({value})")
            elif kind == self.AND:
                pieces.append("and")
            elif kind == self.OR:
                pieces.append("or")
            elif kind == self.NOT:
                pieces.append("not")
            elif kind in (self.LPAREN, self.RPAREN):
                pieces.append(value)

        out: list[str] = []
        for i, piece in enumerate(pieces):
            if i and piece != ")" and out[-1] != "(":
                out.append(" ")
            out.append(piece)
        return "".join(out)


def parse_expression(text: str) -> dict | str:
    """
    Parse a truthy expression into a plain tree.

    Example:
        >>> parse_expression("a && !b || c")
        {'or': [{'and': ['a', {'not': 'b'}]}, 'c']}
    """
    return ExpressionParser(text).parse()


def rewrite(text: str, predicate: str = "is_truthy") -> str:
    """
    Rewrite a truthy expression as Python source.

    Every leaf is wrapped in ``predicate(...)`` and ``!``/``&&``/``||`` become
    ``not``/``and``/``or``. Python gives these the same precedence, so the
    result is equivalent and short-circuits the same way.

    Example:
        >>> rewrite("x && y || !z")
        'is_truthy(x) and is_truthy(y) or not is_truthy(z)'

    Raises:
        ExpressionError: if the expression contains anything but names,
            '!', '&&', '||' and parentheses, or is malformed.
    """
    parser = ExpressionParser(text)
    parser.parse()
    return parser.rewrite(predicate)


# =============================================================================
# Expression Tree & Evaluation
# =============================================================================


@dataclass(frozen=True)
class _Leaf:
    name: str


@dataclass(frozen=True)
class _Not:
    inner: _Node

    @property
    def items(self) -> tuple[_Node, ...]:
        return (self.inner,)


@dataclass(frozen=True)
class _And:
    items: tuple[_Node, ...]


@dataclass(frozen=True)
class _Or:
    items: tuple[_Node, ...]


_Node = _Leaf | _Not | _And | _Or


def _build(node: dict | str) -> _Node:
    """Build an evaluation tree from a parsed expression."""
    if isinstance(node, str):
        return _Leaf(node)

    key, value = next(iter(node.items()))
    if key == "not":
        return _Not(_build(value))
    if key == "and":
        return _And(tuple(_build(item) for item in value))
    if key == "or":
        return _Or(tuple(_build(item) for item in value))
    raise ValueError(f"Invalid expression node: {node}")


def _node_name(node: _Node) -> str:
    if isinstance(node, _Leaf):
        return f"Leaf({node.name})"
    if isinstance(node, _Not):
        return "NOT"
    if isinstance(node, _And):
        return "AND"
    return "OR"


def _ms_since(start: float) -> float:
    return (time.perf_counter() - start) * 1000


@dataclass
class _Frame:
    node: _Not | _And | _Or
    depth: int
    index: int = 0
    start: float | None = None
    span: Any = None


def _run_leaf(
    leaf: _Leaf, depth: int, resolve: Callable[[str], Any], hook: TraceHook | None
) -> bool:
    value = resolve(leaf.name)
    if hook is None:
        return is_truthy(value)

    name = _node_name(leaf)
    start = time.perf_counter()
    span = hook.on_enter(name, value, depth)
    try:
        ok = is_truthy(value)
    except Exception as e:
        hook.on_error(span, name, e, _ms_since(start), depth)
        raise
    hook.on_exit(span, name, ok, _ms_since(start), depth)
    return ok


def _evaluate(root: _Node, resolve: Callable[[str], Any], hook: TraceHook | None) -> bool:
    """
    Evaluate an expression tree iteratively using an explicit stack.

    AND stops at the first falsy child and OR at the first truthy one, so
    skipped leaves are never resolved.
    """
    if isinstance(root, _Leaf):
        return _run_leaf(root, 0, resolve, hook)

    stack: list[_Frame] = [_Frame(root, 0)]
    result = False

    try:
        while stack:
            frame = stack[-1]
            node = frame.node

            if frame.start is None:
                # Fresh frame: enter it and run the first child
                frame.start = time.perf_counter()
                if hook is not None:
                    frame.span = hook.on_enter(_node_name(node), None, frame.depth)
            else:
                # A child finished and left its truthiness in result
                frame.index += 1
                if isinstance(node, _Not):
                    result = not result
                    done = True
                elif isinstance(node, _And):
                    done = not result or frame.index == len(node.items)
                else:
                    done = result or frame.index == len(node.items)

                if done:
                    stack.pop()
                    if hook is not None:
                        hook.on_exit(
                            frame.span,
                            _node_name(node),
                            result,
                            _ms_since(frame.start),
                            frame.depth,
                        )
                    continue

            child = node.items[frame.index]
            if isinstance(child, _Leaf):
                result = _run_leaf(child, frame.depth + 1, resolve, hook)
            else:
                stack.append(_Frame(child, frame.depth + 1))
    except Exception as error:
        if hook is not None:
            for frame in reversed(stack):
                if frame.start is not None:
                    hook.on_error(
                        frame.span,
                        _node_name(frame.node),
                        error,
                        _ms_since(frame.start),
                        frame.depth,
                    )
        raise

    return result


class TruthyExpression:
    """
    A compiled truthy expression.

    Example:
        can_post = compile_expression("logged_in && !muted || moderator")

        can_post(logged_in="alice", muted=0, moderator=None)  # True
        can_post({"logged_in": "", "muted": 0, "moderator": [1]})  # True

    Attributes:
        text: The expression as written
        source: Equivalent Python source with every leaf wrapped in is_truthy()
        names: Leaf names in order of first appearance
        tree: Parsed tree, as returned by parse_expression()
    """

    def __init__(self, text: str, tree: dict | str, source: str, names: tuple[str, ...]):
        self.text = text
        self.tree = tree
        self.source = source
        self.names = names
        self._root = _build(tree)

    def evaluate(self, bindings: Mapping[str, Any] | None = None, /, **values: Any) -> bool:
        """
        Evaluate against bound values.

        Names are looked up in ``values`` first, then in ``bindings``. Only
        the leaves that evaluation actually reaches are looked up.

        Raises:
            NameError: if a reached leaf has no binding.
        """

        def resolve(name: str) -> Any:
            if name in values:
                return values[name]
            if bindings is not None and name in bindings:
                return bindings[name]
            raise NameError(
                f"name {name!r} is not bound in truthy expression {self.text!r}",
                name=name,
            )

        return _evaluate(self._root, resolve, get_trace_hook())

    def __call__(self, bindings: Mapping[str, Any] | None = None, /, **values: Any) -> bool:
        """Shorthand for evaluate()."""
        return self.evaluate(bindings, **values)

    def __repr__(self) -> str:
        return f"TruthyExpression({self.text!r})"

    def __str__(self) -> str:
        return self.source

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TruthyExpression):
            return NotImplemented
        return self.source == other.source

    def __hash__(self) -> int:
        return hash(self.source)


def compile_expression(
    text: str, names: Iterable[str] | None = None
) -> TruthyExpression:
    """
    Compile a truthy expression.

    All validation happens here, so compile expressions at import time to
    surface mistakes before anything runs:

        IS_VISIBLE = compile_expression("published && !deleted")

    Args:
        text: Expression such as "a && (b || !c)"
        names: If given, the only leaf names allowed

    Raises:
        ExpressionError: on calls, attribute access, indexing, literals,
            other operators, malformed syntax, or a leaf not in ``names``.
    """
    parser = ExpressionParser(text)
    tree = parser.parse()
    leaf_names = parser.names

    if names is not None:
        allowed = set(names)
        for kind, value, position in parser.tokens:
            if kind == parser.IDENT and value not in allowed:
                raise ExpressionError(
                    f"unknown name; expected one of: {', '.join(sorted(allowed))}",
                    category="unknown_name",
                    token=value,
                    position=position,
                )

    source = parser.rewrite()
    logger.debug("Compiled truthy expression %r -> %s", text, source)
    return TruthyExpression(text, tree, source, leaf_names)
