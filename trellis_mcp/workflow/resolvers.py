"""Resolve human-readable names to workflow API records.

Matching is exact modulo case.  Zero matches and several matches are both
hard errors: a name collision is never settled by taking the first record.
"""

from __future__ import annotations

from typing import Any

from trellis_mcp.errors import AmbiguousError, NotFoundError

_PLURALS = {"entity": "entities"}


def _matches(records: list[dict[str, Any]], name: str) -> list[dict[str, Any]]:
    wanted = name.lower()
    return [
        r for r in records
        if isinstance(r.get("name"), str) and r["name"].lower() == wanted
    ]


def resolve_by_name(
    records: list[dict[str, Any]],
    name: str,
    kind: str = "record",
    context: str | None = None,
) -> dict[str, Any]:
    """Return the single record whose ``name`` equals *name* ignoring case.

    kind:    noun used in error messages ("entity", "field", "transform").
    context: optional scope appended to messages, e.g. 'on entity "Referral"'.
    """
    matching = _matches(records, name)
    where = f" {context}" if context else ""
    if not matching:
        raise NotFoundError(f'No {kind} found with name "{name}"{where}')
    if len(matching) > 1:
        raise AmbiguousError(f'Multiple {_PLURALS.get(kind, kind + "s")} found with name "{name}"{where}')
    return matching[0]


def resolve_entity(entities: list[dict[str, Any]], entity_name: str) -> dict[str, Any]:
    return resolve_by_name(entities, entity_name, kind="entity")


def resolve_field(fields: list[dict[str, Any]], field_name: str, entity_name: str) -> dict[str, Any]:
    return resolve_by_name(fields, field_name, kind="field", context=f'on entity "{entity_name}"')


def resolve_transform(transforms: list[dict[str, Any]], transform_name: str) -> dict[str, Any]:
    return resolve_by_name(transforms, transform_name, kind="transform")


def resolve_field_ids(
    fields: list[dict[str, Any]],
    field_names: list[str],
    entity_name: str,
) -> dict[str, str]:
    """Resolve many field names at once → ``{human_name: field_id}``.

    Every missing name is collected before failing, so the caller sees the
    whole list in one error rather than fixing them one at a time.
    """
    resolved: dict[str, str] = {}
    missing: list[str] = []
    for field_name in field_names:
        matching = _matches(fields, field_name)
        if not matching:
            missing.append(field_name)
        elif len(matching) > 1:
            raise AmbiguousError(
                f'Multiple fields found with name "{field_name}" on entity "{entity_name}"'
            )
        else:
            resolved[field_name] = matching[0]["id"]
    if missing:
        raise NotFoundError(
            f'Fields not found on entity "{entity_name}": {", ".join(missing)}'
        )
    return resolved
