"""
Policy wire records and structured dict form.

The remote policy service stores each policy as a JSON envelope of
``{"id": ..., "content": ...}`` where content is the policy text. The
admin console edits policies in a nested dict form. This module converts
both to and from PolicyDocument.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable

from .policy import (
    Condition,
    EntityRef,
    PolicyDocument,
    Scope,
    ScopeOperator,
    ValidationError,
    ROLES,
    parse_policy,
    serialize_policy,
)


@dataclass(frozen=True)
class PolicyRecord:
    """A policy as the remote service stores it."""
    id: str
    content: str


# ---------------------------------------------------------------------------
# Wire envelope
# ---------------------------------------------------------------------------

def encode_record(doc: PolicyDocument) -> dict:
    """Build the request payload for a create/update call."""
    return {"id": doc.id, "content": serialize_policy(doc)}


def decode_record(data: Any) -> PolicyDocument:
    """Parse a ``{"id", "content"}`` envelope into a PolicyDocument.

    Args:
        data: The envelope dict (or a PolicyRecord).

    Returns:
        The parsed PolicyDocument carrying the envelope's id.

    Raises:
        ValueError: When the envelope is missing id or content.
        PolicyCodecError: When the content does not parse or validate.
    """
    if isinstance(data, PolicyRecord):
        data = {"id": data.id, "content": data.content}
    if not isinstance(data, dict):
        raise ValueError("Policy record must be a JSON object")
    policy_id = data.get("id")
    if not isinstance(policy_id, str) or policy_id.strip() == "":
        raise ValueError("Missing or invalid required field: id")
    content = data.get("content")
    if not isinstance(content, str):
        raise ValueError(f"Missing or invalid required field: content (policy {policy_id!r})")
    return parse_policy(content, policy_id=policy_id)


def encode_records(docs: Iterable[PolicyDocument]) -> list[dict]:
    return [encode_record(doc) for doc in docs]


def decode_records(items: Any) -> list[PolicyDocument]:
    if not isinstance(items, list):
        raise ValueError("Policy list must be a JSON array")
    return [decode_record(item) for item in items]


def serialize_record(doc: PolicyDocument) -> str:
    """Serialize a PolicyDocument to its JSON envelope string."""
    return json.dumps(encode_record(doc))


def deserialize_record(json_str: str) -> PolicyDocument:
    """Deserialize a JSON envelope string into a PolicyDocument.

    Raises:
        ValueError: When the JSON is malformed or missing required fields.
        PolicyCodecError: When the policy content is invalid.
    """
    try:
        parsed = json.loads(json_str)
    except json.JSONDecodeError as err:
        raise ValueError(f"Invalid JSON: {err}") from err
    return decode_record(parsed)


# ---------------------------------------------------------------------------
# Structured dict form
# ---------------------------------------------------------------------------

def _entity_to_dict(ref: EntityRef) -> dict:
    return {"type": ref.entity_type, "id": ref.entity_id}


def _entity_from_dict(data: Any, role: str) -> EntityRef:
    if not isinstance(data, dict):
        raise ValidationError(f"{role}: entity must be an object with type and id", role)
    return EntityRef(data.get("type"), data.get("id"))


def scope_to_dict(scope: Scope) -> dict:
    op = scope.operator
    if op is ScopeOperator.ALL:
        return {"op": op.value}
    if op in (ScopeOperator.EQ, ScopeOperator.NEQ):
        return {"op": op.value, "entity": _entity_to_dict(scope.target)}
    return {"op": op.value, "entities": [_entity_to_dict(ref) for ref in scope.entities]}


def scope_from_dict(data: Any, role: str = "scope") -> Scope:
    """Build a Scope from the console's ``{"op", "entity" | "entities"}`` shape.

    For in / not in a lone ``entity`` is accepted as a one-element list.
    """
    if not isinstance(data, dict):
        raise ValidationError(f"{role} must be an object", role)
    try:
        op = ScopeOperator(data.get("op", ScopeOperator.ALL.value))
    except ValueError:
        raise ValidationError(f"{role}: unknown operator {data.get('op')!r}", role) from None

    if op is ScopeOperator.ALL:
        return Scope.all()
    if op in (ScopeOperator.EQ, ScopeOperator.NEQ):
        return Scope(op, _entity_from_dict(data.get("entity"), role))

    entities = data.get("entities")
    if entities is None and data.get("entity") is not None:
        entities = [data["entity"]]
    if not isinstance(entities, list):
        raise ValidationError(f"{role}: operator '{op.value}' requires a list of entities", role)
    return Scope(op, tuple(_entity_from_dict(item, role) for item in entities))


def policy_to_dict(doc: PolicyDocument) -> dict:
    """Convert a PolicyDocument to the console's nested dict form."""
    result: dict[str, Any] = {"id": doc.id, "effect": doc.effect.value}
    for role in ROLES:
        result[role] = scope_to_dict(getattr(doc, role))
    result["conditions"] = [
        {"kind": cond.kind.value, "body": cond.body} for cond in doc.conditions
    ]
    return result


def policy_from_dict(data: Any) -> PolicyDocument:
    """Build a PolicyDocument from the console's nested dict form.

    Raises:
        ValidationError: When the dict does not describe a valid policy.
    """
    if not isinstance(data, dict):
        raise ValidationError("Policy must be an object")
    raw_conditions = data.get("conditions") or []
    if not isinstance(raw_conditions, list):
        raise ValidationError("conditions must be a list", "conditions")
    conditions = []
    for item in raw_conditions:
        if not isinstance(item, dict):
            raise ValidationError("each condition must be an object with kind and body", "conditions")
        conditions.append(Condition(item.get("kind"), item.get("body", "")))

    return PolicyDocument(
        id=data.get("id", ""),
        effect=data.get("effect"),
        principal=scope_from_dict(data.get("principal", {}), "principal"),
        action=scope_from_dict(data.get("action", {}), "action"),
        resource=scope_from_dict(data.get("resource", {}), "resource"),
        conditions=tuple(conditions),
    )
