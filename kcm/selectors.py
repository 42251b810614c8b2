"""Label selectors: parsing the string form, building from structured selectors, matching."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field

from kcm.meta import (
    LABEL_SELECTOR_OP_DOES_NOT_EXIST,
    LABEL_SELECTOR_OP_EXISTS,
    LABEL_SELECTOR_OP_IN,
    LABEL_SELECTOR_OP_NOT_IN,
    LabelSelector,
)

_NAME_RE = re.compile(r"[A-Za-z0-9](?:[-A-Za-z0-9_.]*[A-Za-z0-9])?")
_SUBDOMAIN_RE = re.compile(r"[a-z0-9](?:[-a-z0-9]*[a-z0-9])?(?:\.[a-z0-9](?:[-a-z0-9]*[a-z0-9])?)*")
_INT_RE = re.compile(r"-?[0-9]+")
_TOKEN_RE = re.compile(r"\s*(?:(!=|==|=|!|<|>|\(|\)|,)|([^\s,()=!<>]+))")

_NAME_MAX = 63
_SUBDOMAIN_MAX = 253


class SelectorError(ValueError):
    """A label selector could not be parsed or built."""


class Operator(str, enum.Enum):
    """How a requirement compares a label with its values."""

    EQUALS = "="
    DOUBLE_EQUALS = "=="
    NOT_EQUALS = "!="
    IN = "in"
    NOT_IN = "notin"
    EXISTS = "exists"
    DOES_NOT_EXIST = "!"
    GREATER_THAN = "gt"
    LESS_THAN = "lt"


_SINGLE_VALUE_OPS = {Operator.EQUALS, Operator.DOUBLE_EQUALS, Operator.NOT_EQUALS}
_SET_OPS = {Operator.IN, Operator.NOT_IN}
_PRESENCE_OPS = {Operator.EXISTS, Operator.DOES_NOT_EXIST}
_NUMERIC_OPS = {Operator.GREATER_THAN, Operator.LESS_THAN}

_SYMBOL_OPS = {
    "=": Operator.EQUALS,
    "==": Operator.DOUBLE_EQUALS,
    "!=": Operator.NOT_EQUALS,
    ">": Operator.GREATER_THAN,
    "<": Operator.LESS_THAN,
}
_WORD_OPS = {"in": Operator.IN, "notin": Operator.NOT_IN}


def _validate_key(key: str) -> None:
    parts = key.split("/")
    if len(parts) > 2:
        raise SelectorError(f"invalid label key {key!r}: at most one '/' is allowed")
    if len(parts) == 2:
        prefix, name = parts
        if not prefix or len(prefix) > _SUBDOMAIN_MAX or not _SUBDOMAIN_RE.fullmatch(prefix):
            raise SelectorError(f"invalid label key {key!r}: prefix must be a DNS subdomain")
    else:
        name = parts[0]
    if not name or len(name) > _NAME_MAX or not _NAME_RE.fullmatch(name):
        raise SelectorError(f"invalid label key {key!r}: name part is not a valid qualified name")


def _validate_value(value: str) -> None:
    if value == "":
        return
    if len(value) > _NAME_MAX or not _NAME_RE.fullmatch(value):
        raise SelectorError(f"invalid label value {value!r}")


@dataclass(frozen=True)
class Requirement:
    """One condition on one label key."""

    key: str
    operator: Operator
    values: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _validate_key(self.key)
        op = self.operator
        if op in _SET_OPS and not self.values:
            raise SelectorError("for 'in', 'notin' operators, values set can't be empty")
        if op in _SINGLE_VALUE_OPS and len(self.values) != 1:
            raise SelectorError("exact-match compatibility requires one single value")
        if op in _PRESENCE_OPS and self.values:
            raise SelectorError("values set must be empty for exists and does not exist")
        if op in _NUMERIC_OPS:
            if len(self.values) != 1:
                raise SelectorError("for 'Gt', 'Lt' operators, exactly one value is required")
            if not _INT_RE.fullmatch(self.values[0]):
                raise SelectorError(
                    f"for 'Gt', 'Lt' operators, the value must be an integer, got {self.values[0]!r}"
                )
        else:
            for value in self.values:
                _validate_value(value)
        object.__setattr__(self, "values", tuple(sorted(set(self.values))))

    def matches(self, labels: dict[str, str]) -> bool:
        """Whether ``labels`` satisfy this requirement."""
        op = self.operator
        present = self.key in labels
        if op is Operator.EXISTS:
            return present
        if op is Operator.DOES_NOT_EXIST:
            return not present
        if op in (Operator.IN, Operator.EQUALS, Operator.DOUBLE_EQUALS):
            return present and labels[self.key] in self.values
        if op in (Operator.NOT_IN, Operator.NOT_EQUALS):
            return not present or labels[self.key] not in self.values
        if not present or not _INT_RE.fullmatch(labels[self.key]):
            return False
        actual, wanted = int(labels[self.key]), int(self.values[0])
        return actual > wanted if op is Operator.GREATER_THAN else actual < wanted

    def __str__(self) -> str:
        op = self.operator
        if op is Operator.EXISTS:
            return self.key
        if op is Operator.DOES_NOT_EXIST:
            return f"!{self.key}"
        if op in _SET_OPS:
            return f"{self.key} {op.value} ({','.join(self.values)})"
        symbol = {Operator.GREATER_THAN: ">", Operator.LESS_THAN: "<"}.get(op, op.value)
        return f"{self.key}{symbol}{self.values[0]}"


@dataclass(frozen=True)
class Selector:
    """A conjunction of requirements; ``nothing`` makes it match no labels at all."""

    requirements: tuple[Requirement, ...] = field(default_factory=tuple)
    nothing: bool = False

    def matches(self, labels: dict[str, str]) -> bool:
        """Whether ``labels`` satisfy every requirement."""
        if self.nothing:
            return False
        return all(r.matches(labels) for r in self.requirements)

    def empty(self) -> bool:
        """Whether the selector places no restriction at all."""
        return not self.nothing and not self.requirements

    def __str__(self) -> str:
        return ",".join(str(r) for r in self.requirements)


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens = []
    pos = 0
    while pos < len(text):
        if not text[pos:].strip():
            break
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise SelectorError(f"unable to parse selector {text!r} at position {pos}")
        symbol, ident = match.groups()
        tokens.append(("op", symbol) if symbol is not None else ("id", ident))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0

    def _peek(self) -> tuple[str, str] | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _fail(self, what: str) -> SelectorError:
        return SelectorError(f"unable to parse selector {self.text!r}: {what}")

    def parse(self) -> Selector:
        if not self.tokens:
            return Selector()
        requirements = [self._requirement()]
        while self.pos < len(self.tokens):
            if self._peek() != ("op", ","):
                raise self._fail(f"expected ',' but found {self._peek()[1]!r}")
            self.pos += 1
            requirements.append(self._requirement())
        requirements.sort(key=lambda r: r.key)
        return Selector(tuple(requirements))

    def _identifier(self) -> str:
        token = self._peek()
        if token is None or token[0] != "id":
            raise self._fail("expected a label key")
        self.pos += 1
        return token[1]

    def _requirement(self) -> Requirement:
        if self._peek() == ("op", "!"):
            self.pos += 1
            return Requirement(self._identifier(), Operator.DOES_NOT_EXIST)

        key = self._identifier()
        token = self._peek()
        if token is None or token == ("op", ","):
            return Requirement(key, Operator.EXISTS)

        kind, text = token
        if kind == "op" and text in _SYMBOL_OPS:
            self.pos += 1
            value = ""
            following = self._peek()
            if following is not None and following[0] == "id":
                value = following[1]
                self.pos += 1
            return Requirement(key, _SYMBOL_OPS[text], (value,))
        if kind == "id" and text in _WORD_OPS:
            self.pos += 1
            return Requirement(key, _WORD_OPS[text], tuple(self._value_set()))
        raise self._fail(f"unexpected {text!r} after key {key!r}")

    def _value_set(self) -> list[str]:
        if self._peek() != ("op", "("):
            raise self._fail("expected '(' to start a set of values")
        self.pos += 1
        values: list[str] = []
        expect_value = True
        while True:
            token = self._peek()
            if token is None:
                raise self._fail("unterminated set of values")
            kind, text = token
            self.pos += 1
            if kind == "id":
                if not expect_value:
                    raise self._fail(f"expected ',' or ')' but found {text!r}")
                values.append(text)
                expect_value = False
            elif text == ",":
                if expect_value:
                    values.append("")
                expect_value = True
            elif text == ")":
                if expect_value and values:
                    values.append("")
                return values
            else:
                raise self._fail(f"unexpected {text!r} in a set of values")


def parse_selector(text: str) -> Selector:
    """Parse the string form of a label selector, e.g. ``env in (dev,prod),!legacy``."""
    return _Parser(text).parse()


_EXPRESSION_OPS = {
    LABEL_SELECTOR_OP_IN: Operator.IN,
    LABEL_SELECTOR_OP_NOT_IN: Operator.NOT_IN,
    LABEL_SELECTOR_OP_EXISTS: Operator.EXISTS,
    LABEL_SELECTOR_OP_DOES_NOT_EXIST: Operator.DOES_NOT_EXIST,
}


def selector_from_label_selector(label_selector: LabelSelector | None) -> Selector:
    """Build a Selector from a structured one; None gives a selector matching nothing."""
    if label_selector is None:
        return Selector(nothing=True)
    requirements = [
        Requirement(key, Operator.EQUALS, (value,))
        for key, value in label_selector.match_labels.items()
    ]
    for expression in label_selector.match_expressions:
        op = _EXPRESSION_OPS.get(expression.operator)
        if op is None:
            raise SelectorError(f"{expression.operator!r} is not a valid label selector operator")
        requirements.append(Requirement(expression.key, op, tuple(expression.values)))
    requirements.sort(key=lambda r: r.key)
    return Selector(tuple(requirements))