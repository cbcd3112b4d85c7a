"""
Cedar policy scope/condition codec.

Converts between the structured policy model edited in the admin console
(principal/action/resource scopes plus ordered when/unless conditions) and
the policy text stored by the remote policy service. Provides the complete
pipeline: lexing, parsing, validation, and serialization.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

class Effect(str, Enum):
    PERMIT = "permit"
    FORBID = "forbid"


class ScopeOperator(str, Enum):
    ALL = "All"
    EQ = "=="
    NEQ = "!="
    IN = "in"
    NOT_IN = "not in"


class ConditionKind(str, Enum):
    WHEN = "when"
    UNLESS = "unless"


@dataclass(frozen=True)
class EntityRef:
    """A reference to a single entity, written ``Type::"id"`` in policy text."""
    entity_type: str
    entity_id: str

    def __post_init__(self) -> None:
        _validate_entity_ref(self)

    def __str__(self) -> str:
        return _serialize_entity_ref(self)


ScopeTarget = Optional[Union[EntityRef, tuple[EntityRef, ...]]]


@dataclass(frozen=True)
class Scope:
    """A principal, action, or resource constraint.

    The shape of ``target`` follows from ``operator``: ``None`` for All,
    a single EntityRef for == and !=, and a non-empty tuple of EntityRef
    for in and not in.
    """
    operator: ScopeOperator = ScopeOperator.ALL
    target: ScopeTarget = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "operator", _coerce_enum(ScopeOperator, self.operator, "operator")
        )
        if isinstance(self.target, list):
            object.__setattr__(self, "target", tuple(self.target))
        _validate_scope_shape(self, "scope")

    @classmethod
    def all(cls) -> Scope:
        return cls()

    @classmethod
    def eq(cls, ref: EntityRef) -> Scope:
        return cls(ScopeOperator.EQ, ref)

    @classmethod
    def neq(cls, ref: EntityRef) -> Scope:
        return cls(ScopeOperator.NEQ, ref)

    @classmethod
    def is_in(cls, refs: Any) -> Scope:
        return cls(ScopeOperator.IN, tuple(refs))

    @classmethod
    def not_in(cls, refs: Any) -> Scope:
        return cls(ScopeOperator.NOT_IN, tuple(refs))

    @property
    def entities(self) -> tuple[EntityRef, ...]:
        """All referenced entities, in order, regardless of target shape."""
        if self.target is None:
            return ()
        if isinstance(self.target, EntityRef):
            return (self.target,)
        return self.target


@dataclass(frozen=True)
class Condition:
    """A when/unless clause. The body is opaque text, stored trimmed."""
    kind: ConditionKind
    body: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", _coerce_enum(ConditionKind, self.kind, "kind"))
        if not isinstance(self.body, str):
            raise ValidationError("Condition body must be a string", "conditions")
        object.__setattr__(self, "body", self.body.strip())
        _validate_condition(self)


@dataclass(frozen=True)
class PolicyDocument:
    """One authorization rule in structured form."""
    id: str
    effect: Effect
    principal: Scope = field(default_factory=Scope)
    action: Scope = field(default_factory=Scope)
    resource: Scope = field(default_factory=Scope)
    conditions: tuple[Condition, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "effect", _coerce_enum(Effect, self.effect, "effect"))
        if isinstance(self.conditions, list):
            object.__setattr__(self, "conditions", tuple(self.conditions))
        validate_policy(self)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class PolicyCodecError(Exception):
    """Base class for every error raised while decoding or encoding a policy."""


class LexError(PolicyCodecError):
    """Raised when policy text contains a character the lexer cannot classify."""

    def __init__(self, message: str, offset: int = 0, line: int = 0, column: int = 0):
        self.offset = offset
        self.line = line
        self.column = column
        super().__init__(f"Policy lex error at line {line}, column {column}: {message}")


class ParseError(PolicyCodecError):
    """Raised when the token stream does not match the policy grammar."""

    def __init__(
        self,
        message: str,
        expected: str = "",
        found: str = "",
        offset: int = 0,
        line: int = 0,
        column: int = 0,
    ):
        self.expected = expected
        self.found = found
        self.offset = offset
        self.line = line
        self.column = column
        if line:
            message = f"Policy parse error at line {line}, column {column}: {message}"
        super().__init__(message)


class UnexpectedTokenError(ParseError):
    """A token other than the one the grammar requires."""


class MissingOperandError(ParseError):
    """A scope operator with no entity reference after it."""


class UnterminatedBlockError(ParseError):
    """A when/unless block with no matching closing brace."""


class UnsupportedOperatorError(ParseError):
    """An operator outside the subset supported for a scope role."""


class ValidationError(PolicyCodecError):
    """Raised when a policy is well-formed but violates a model invariant."""

    def __init__(self, message: str, field: str = ""):
        self.field = field
        super().__init__(message)


class UnsupportedActionOperatorError(UnsupportedOperatorError, ValidationError):
    """Raised when the action scope uses ``not in``.

    Raised by the parser (with a source position) and by validation of a
    constructed document (without one), so it is both a ParseError and a
    ValidationError.
    """

    def __init__(
        self,
        message: str = "Operator 'not in' is not supported for the action scope",
        offset: int = 0,
        line: int = 0,
        column: int = 0,
    ):
        super().__init__(
            message,
            expected="'==', '!=' or 'in'",
            found="not in",
            offset=offset,
            line=line,
            column=column,
        )
        self.field = "action"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

ROLES = ("principal", "action", "resource")

_ENTITY_TYPE_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(?:::[A-Za-z_][A-Za-z0-9_]*)*")


def _coerce_enum(enum_cls: type[Enum], value: Any, field_name: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(repr(member.value) for member in enum_cls)
        raise ValidationError(
            f"Invalid {field_name} {value!r}, expected one of {allowed}", field_name
        ) from None


def _validate_entity_ref(ref: EntityRef) -> None:
    entity_type = ref.entity_type
    if not isinstance(entity_type, str) or not _ENTITY_TYPE_RE.fullmatch(entity_type):
        raise ValidationError(
            f"Invalid entity type {entity_type!r}, expected an identifier "
            f"such as 'User' or 'Ns::Document'",
            "entity_type",
        )
    for segment in entity_type.split("::"):
        if segment in KEYWORDS:
            raise ValidationError(
                f"Entity type {entity_type!r} uses reserved keyword '{segment}'",
                "entity_type",
            )
    if not isinstance(ref.entity_id, str):
        raise ValidationError(
            f"Entity id for type '{entity_type}' must be a string", "entity_id"
        )


def _validate_scope_shape(scope: Scope, role: str) -> None:
    op = scope.operator
    target = scope.target

    if op is ScopeOperator.ALL:
        if target is not None:
            raise ValidationError(f"{role}: operator 'All' takes no entity", role)
        return

    if op in (ScopeOperator.EQ, ScopeOperator.NEQ):
        if not isinstance(target, EntityRef):
            raise ValidationError(
                f"{role}: operator '{op.value}' requires a single entity reference", role
            )
        _validate_entity_ref(target)
        if target.entity_id == "":
            raise ValidationError(
                f"{role}: operator '{op.value}' requires a non-empty entity id", role
            )
        return

    if not isinstance(target, tuple) or len(target) == 0:
        raise ValidationError(
            f"{role}: operator '{op.value}' requires a non-empty list of entity references",
            role,
        )
    for ref in target:
        if not isinstance(ref, EntityRef):
            raise ValidationError(
                f"{role}: entity list may only contain entity references, got {ref!r}",
                role,
            )
        _validate_entity_ref(ref)


def _validate_condition(cond: Condition) -> None:
    body = cond.body
    if body != body.strip():
        raise ValidationError("Condition body must not have surrounding whitespace", "conditions")
    if _find_block_end(body + "}", 0) != len(body):
        raise ValidationError(
            f"'{cond.kind.value}' condition body has unbalanced braces or an "
            f"unterminated string literal",
            "conditions",
        )


def validate_scope(role: str, scope: Scope) -> None:
    """Check a scope against the rules for its role.

    Raises:
        ValidationError: On the first violation found.
        UnsupportedActionOperatorError: When the action scope uses not in.
    """
    if not isinstance(scope, Scope):
        raise ValidationError(f"{role} must be a Scope, got {type(scope).__name__}", role)
    _validate_scope_shape(scope, role)
    if role == "action" and scope.operator is ScopeOperator.NOT_IN:
        raise UnsupportedActionOperatorError()


def validate_policy(doc: PolicyDocument) -> None:
    """Validate a structured policy, raising the first violation found.

    Runs automatically when a PolicyDocument is constructed, so every
    document handed to serialize_policy has already passed.

    Args:
        doc: The policy to check.

    Raises:
        ValidationError: When an invariant of the structured model is violated.
    """
    if not isinstance(doc.id, str):
        raise ValidationError("Policy id must be a string", "id")
    if not isinstance(doc.effect, Effect):
        raise ValidationError(f"Invalid effect {doc.effect!r}", "effect")
    for role in ROLES:
        validate_scope(role, getattr(doc, role))
    for cond in doc.conditions:
        if not isinstance(cond, Condition):
            raise ValidationError(
                f"conditions may only contain Condition instances, got {cond!r}",
                "conditions",
            )
        _validate_condition(cond)


# ---------------------------------------------------------------------------
# Token types
# ---------------------------------------------------------------------------

@dataclass
class Token:
    type: str
    value: str
    line: int
    column: int
    offset: int = 0


KEYWORDS: dict[str, str] = {
    "permit": "PERMIT",
    "forbid": "FORBID",
    "principal": "PRINCIPAL",
    "action": "ACTION",
    "resource": "RESOURCE",
    "when": "WHEN",
    "unless": "UNLESS",
    "in": "IN",
    "not": "NOT",
}

# Two-character tokens are matched before any single character.
_TWO_CHAR_TOKENS: dict[str, str] = {
    "==": "EQ",
    "!=": "NEQ",
    "::": "DOUBLE_COLON",
}

_ONE_CHAR_TOKENS: dict[str, str] = {
    "(": "LPAREN",
    ")": "RPAREN",
    "{": "LBRACE",
    "}": "RBRACE",
    "[": "LBRACKET",
    "]": "RBRACKET",
    ",": "COMMA",
    ";": "SEMICOLON",
}

_STRING_ESCAPES: dict[str, str] = {
    '"': '"',
    "'": "'",
    "\\": "\\",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "0": "\0",
}


# ---------------------------------------------------------------------------
# Lexer
# ---------------------------------------------------------------------------

def _is_ident_start(ch: str) -> bool:
    return ch.isascii() and (ch.isalpha() or ch == "_")


def _is_ident_part(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == "_")


def _find_block_end(text: str, start: int) -> Optional[int]:
    """Return the index of the brace closing a block whose body begins at start.

    Nested braces are counted; braces inside double-quoted strings are not.
    Returns None when the text ends before the block is closed.
    """
    depth = 1
    in_string = False
    i = start
    length = len(text)
    while i < length:
        ch = text[i]
        if in_string:
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def tokenize(source: str) -> list[Token]:
    """Tokenize policy text into a list of tokens terminated by EOF.

    The raw text of a when/unless block is emitted as a single BODY token
    between its LBRACE and RBRACE.

    Raises:
        LexError: At the first character that cannot start a token, on an
            unterminated string literal, or on an unknown escape sequence.
    """
    tokens: list[Token] = []
    pos = 0
    line = 1
    column = 1
    length = len(source)

    def peek() -> str:
        return source[pos] if pos < length else ""

    def advance() -> str:
        nonlocal pos, line, column
        ch = source[pos]
        pos += 1
        if ch == "\n":
            line += 1
            column = 1
        else:
            column += 1
        return ch

    def add_token(token_type: str, value: str, start: tuple[int, int, int]) -> None:
        offset, start_line, start_column = start
        tokens.append(
            Token(type=token_type, value=value, line=start_line, column=start_column, offset=offset)
        )

    def read_escape(start: tuple[int, int, int]) -> str:
        if pos >= length:
            raise LexError("Unterminated string literal", *start)
        code = advance()
        if code in _STRING_ESCAPES:
            return _STRING_ESCAPES[code]
        if code == "u" and peek() == "{":
            advance()
            digits = ""
            while pos < length and peek() != "}" and len(digits) <= 6:
                digits += advance()
            if (
                peek() != "}"
                or not 1 <= len(digits) <= 6
                or any(d not in "0123456789abcdefABCDEF" for d in digits)
            ):
                raise LexError("Malformed unicode escape, expected \\u{hex}", *start)
            advance()
            codepoint = int(digits, 16)
            if codepoint > 0x10FFFF:
                raise LexError(f"Unicode escape \\u{{{digits}}} is out of range", *start)
            return chr(codepoint)
        raise LexError(f"Unsupported escape sequence '\\{code}'", *start)

    def read_string(start: tuple[int, int, int]) -> str:
        advance()  # opening quote
        chars: list[str] = []
        while pos < length:
            escape_start = (pos, line, column)
            ch = advance()
            if ch == '"':
                return "".join(chars)
            if ch == "\\":
                chars.append(read_escape(escape_start))
                continue
            chars.append(ch)
        raise LexError("Unterminated string literal", *start)

    while pos < length:
        ch = peek()

        if ch.isspace():
            advance()
            continue

        start = (pos, line, column)

        pair = source[pos:pos + 2]
        if pair in _TWO_CHAR_TOKENS:
            advance()
            advance()
            add_token(_TWO_CHAR_TOKENS[pair], pair, start)
            continue

        if ch in _ONE_CHAR_TOKENS:
            advance()
            add_token(_ONE_CHAR_TOKENS[ch], ch, start)
            # Condition bodies are opaque: capture up to the matching brace.
            if ch == "{" and len(tokens) >= 2 and tokens[-2].type in ("WHEN", "UNLESS"):
                body_start = (pos, line, column)
                end = _find_block_end(source, pos)
                stop = length if end is None else end
                while pos < stop:
                    advance()
                add_token("BODY", source[body_start[0]:stop], body_start)
            continue

        if ch == '"':
            add_token("STRING", read_string(start), start)
            continue

        if _is_ident_start(ch):
            ident = ""
            while pos < length and _is_ident_part(peek()):
                ident += advance()
            add_token(KEYWORDS.get(ident, "IDENTIFIER"), ident, start)
            continue

        raise LexError(f"Unexpected character {ch!r}", *start)

    add_token("EOF", "", (pos, line, column))
    return tokens


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

_SCOPE_OPERATOR_TOKENS: dict[str, ScopeOperator] = {
    "EQ": ScopeOperator.EQ,
    "NEQ": ScopeOperator.NEQ,
    "IN": ScopeOperator.IN,
}


def _describe(tok: Token) -> str:
    if tok.type == "EOF":
        return "end of input"
    if tok.type == "STRING":
        return f'string "{tok.value}"'
    return f"'{tok.value}' ({tok.type})"


class _Parser:
    """Recursive descent parser for policy tokens."""

    def __init__(self, tokens: list[Token]):
        self._tokens = tokens
        self._pos = 0

    def parse(self, policy_id: str) -> PolicyDocument:
        effect = self._parse_effect()
        self._expect("LPAREN", "Expected '(' after effect", "'('")

        # Scopes are positional; a bare role keyword means All.
        principal = self._parse_scope("PRINCIPAL", "principal")
        self._expect("COMMA", "Expected ',' after principal scope", "','")
        action = self._parse_scope("ACTION", "action")
        self._expect("COMMA", "Expected ',' after action scope", "','")
        resource = self._parse_scope("RESOURCE", "resource")
        self._expect("RPAREN", "Expected ')' after resource scope", "')'")

        conditions = self._parse_conditions()

        if self._check("SEMICOLON"):
            self._advance()
        if not self._check("EOF"):
            raise self._error(UnexpectedTokenError, "Expected end of policy", "end of input")

        return PolicyDocument(
            id=policy_id,
            effect=effect,
            principal=principal,
            action=action,
            resource=resource,
            conditions=tuple(conditions),
        )

    def _parse_effect(self) -> Effect:
        tok = self._current()
        if tok.type == "PERMIT":
            self._advance()
            return Effect.PERMIT
        if tok.type == "FORBID":
            self._advance()
            return Effect.FORBID
        raise self._error(
            UnexpectedTokenError,
            "Expected effect keyword 'permit' or 'forbid'",
            "'permit' or 'forbid'",
        )

    def _parse_scope(self, keyword: str, role: str) -> Scope:
        self._expect(keyword, f"Expected '{role}' scope", f"'{role}'")

        op_tok = self._current()
        if op_tok.type == "NOT":
            self._advance()
            self._expect("IN", "Expected 'in' after 'not'", "'in'")
            operator = ScopeOperator.NOT_IN
        elif op_tok.type in _SCOPE_OPERATOR_TOKENS:
            self._advance()
            operator = _SCOPE_OPERATOR_TOKENS[op_tok.type]
        else:
            return Scope.all()

        if role == "action" and operator is ScopeOperator.NOT_IN:
            raise UnsupportedActionOperatorError(
                offset=op_tok.offset, line=op_tok.line, column=op_tok.column
            )

        if not (self._check("IDENTIFIER") or self._check("LBRACKET")):
            raise self._error(
                MissingOperandError,
                f"Expected entity reference after '{operator.value}' in {role} scope",
                "entity reference",
            )

        if operator in (ScopeOperator.EQ, ScopeOperator.NEQ):
            if self._check("LBRACKET"):
                raise self._error(
                    UnexpectedTokenError,
                    f"Operator '{operator.value}' in {role} scope takes a single "
                    f"entity reference, not a list",
                    "entity reference",
                )
            return Scope(operator, self._parse_entity_ref())

        if self._check("LBRACKET"):
            return Scope(operator, self._parse_entity_list(role))
        return Scope(operator, (self._parse_entity_ref(),))

    def _parse_entity_list(self, role: str) -> tuple[EntityRef, ...]:
        self._expect("LBRACKET", "Expected '['", "'['")
        if self._check("RBRACKET"):
            raise self._error(
                MissingOperandError,
                f"Entity list in {role} scope must not be empty",
                "entity reference",
            )

        refs = [self._parse_entity_ref()]
        while self._check("COMMA"):
            self._advance()
            refs.append(self._parse_entity_ref())

        self._expect("RBRACKET", "Expected ']' to close entity list", "']'")
        return tuple(refs)

    def _parse_entity_ref(self) -> EntityRef:
        tok = self._current()
        if tok.type != "IDENTIFIER":
            raise self._error(UnexpectedTokenError, "Expected entity type", "entity type")
        segments = [tok.value]
        self._advance()

        while True:
            entity_type = "::".join(segments)
            self._expect(
                "DOUBLE_COLON", f"Expected '::' after entity type '{entity_type}'", "'::'"
            )
            tok = self._current()
            if tok.type == "STRING":
                self._advance()
                return EntityRef(entity_type, tok.value)
            if tok.type == "IDENTIFIER" and self._peek(1).type == "DOUBLE_COLON":
                segments.append(tok.value)
                self._advance()
                continue
            raise self._error(
                UnexpectedTokenError,
                f"Expected quoted entity id after '{entity_type}::'",
                "string literal",
            )

    def _parse_conditions(self) -> list[Condition]:
        conditions: list[Condition] = []
        while self._check("WHEN") or self._check("UNLESS"):
            kind_tok = self._advance()
            kind = ConditionKind.WHEN if kind_tok.type == "WHEN" else ConditionKind.UNLESS
            open_tok = self._expect("LBRACE", f"Expected '{{' after '{kind.value}'", "'{'")
            body_tok = self._expect("BODY", f"Expected '{kind.value}' block body", "condition body")
            if not self._check("RBRACE"):
                raise UnterminatedBlockError(
                    f"Unterminated '{kind.value}' block, no matching '}}'",
                    expected="'}'",
                    found="end of input",
                    offset=open_tok.offset,
                    line=open_tok.line,
                    column=open_tok.column,
                )
            self._advance()
            conditions.append(Condition(kind, body_tok.value))
            if self._check("SEMICOLON"):
                self._advance()
        return conditions

    # -- Utility methods --

    def _current(self) -> Token:
        return self._peek(0)

    def _peek(self, ahead: int) -> Token:
        idx = self._pos + ahead
        if idx >= len(self._tokens):
            return self._tokens[-1]
        return self._tokens[idx]

    def _advance(self) -> Token:
        tok = self._current()
        if self._pos < len(self._tokens) - 1:
            self._pos += 1
        return tok

    def _check(self, token_type: str) -> bool:
        return self._current().type == token_type

    def _expect(self, token_type: str, message: str, expected: str) -> Token:
        if not self._check(token_type):
            raise self._error(UnexpectedTokenError, message, expected)
        return self._advance()

    def _error(self, error_cls: type[ParseError], message: str, expected: str) -> ParseError:
        tok = self._current()
        found = _describe(tok)
        return error_cls(
            f"{message}, but got {found}",
            expected=expected,
            found=found,
            offset=tok.offset,
            line=tok.line,
            column=tok.column,
        )


# ---------------------------------------------------------------------------
# Public parse function
# ---------------------------------------------------------------------------

def parse_policy(text: str, policy_id: str = "") -> PolicyDocument:
    """Parse policy text into a structured PolicyDocument.

    The id is not part of the policy text; callers pass the id the remote
    service returned alongside the content.

    Args:
        text: A single policy, e.g. ``permit(principal, action, resource);``.
        policy_id: The policy's identifier.

    Returns:
        The parsed and validated PolicyDocument.

    Raises:
        LexError: When the text contains characters outside the policy subset.
        ParseError: When the text does not match the grammar.
        ValidationError: When the parsed policy violates a model invariant.
    """
    if not isinstance(text, str):
        raise TypeError(f"parse_policy() expects str, got {type(text).__name__}")
    if text.strip() == "":
        raise UnexpectedTokenError(
            "Policy text is empty, expected e.g. permit(principal, action, resource);",
            expected="'permit' or 'forbid'",
            found="end of input",
            line=1,
            column=1,
        )
    tokens = tokenize(text)
    doc = _Parser(tokens).parse(policy_id)
    logger.debug(
        "parsed policy id=%r effect=%s conditions=%d",
        doc.id,
        doc.effect.value,
        len(doc.conditions),
    )
    return doc


# ---------------------------------------------------------------------------
# Serialize
# ---------------------------------------------------------------------------

_QUOTE_ESCAPES: dict[str, str] = {
    '"': '\\"',
    "\\": "\\\\",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\0": "\\0",
}


def _quote(value: str) -> str:
    return '"' + "".join(_QUOTE_ESCAPES.get(ch, ch) for ch in value) + '"'


def _serialize_entity_ref(ref: EntityRef) -> str:
    return f"{ref.entity_type}::{_quote(ref.entity_id)}"


def _serialize_scope(role: str, scope: Scope) -> str:
    op = scope.operator
    if op is ScopeOperator.ALL:
        return role
    if op in (ScopeOperator.EQ, ScopeOperator.NEQ):
        return f"{role} {op.value} {_serialize_entity_ref(scope.target)}"
    # in / not in are always bracketed, whatever the list length
    items = ", ".join(_serialize_entity_ref(ref) for ref in scope.entities)
    return f"{role} {op.value} [{items}]"


def _serialize_condition(cond: Condition) -> str:
    return f"{cond.kind.value} {{\n  {cond.body}\n}};"


def serialize_policy(doc: PolicyDocument) -> str:
    """Serialize a PolicyDocument to canonical policy text.

    The output is deterministic and parses back to an equal document
    (given the same id).

    Args:
        doc: The policy to serialize.

    Returns:
        The policy text, without a trailing newline.
    """
    lines = [
        f"{doc.effect.value}(",
        f"  {_serialize_scope('principal', doc.principal)},",
        f"  {_serialize_scope('action', doc.action)},",
        f"  {_serialize_scope('resource', doc.resource)}",
    ]
    if doc.conditions:
        lines.append(")")
        lines.extend(_serialize_condition(cond) for cond in doc.conditions)
    else:
        lines.append(");")
    return "\n".join(lines)
