"""
Declared argument shapes for the listing routes.

Shapes for dynamic fields come from the registry snapshot, so they are
rebuilt whenever a new snapshot replaces the old one (memoized per snapshot).
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from app.core.errors import ApiError, fail
from app.services.registry import FieldRegistry

ROUTES = ("create", "update")

_INT_RE = re.compile(r"^\s*-?\d+\s*$")


@dataclass(frozen=True)
class ArgShape:
    name: str
    types: tuple[str, ...]
    required: bool = False
    items: str | None = None
    description: str = ""

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": list(self.types) if len(self.types) > 1 else self.types[0], "required": self.required}
        if self.items:
            out["items"] = {"type": self.items}
        if self.description:
            out["description"] = self.description
        return out


def _fixed_shapes(route: str) -> list[ArgShape]:
    return [
        ArgShape("id", ("integer",), required=(route == "update"), description="Listing id."),
        ArgShape("title", ("string",), description="Listing title."),
        ArgShape("status", ("string",), description="Listing status."),
        ArgShape("featured_image", ("integer",), description="Media id of the featured image."),
        ArgShape("country", ("string",)),
        ArgShape("state", ("string",)),
        ArgShape("city", ("string",)),
        ArgShape("categories", ("array", "string"), items="string", description="Category names."),
        ArgShape("tags", ("array", "string"), items="string", description="Tag names."),
        ArgShape("meta", ("object",), description="Field values keyed by shortname or meta key."),
    ]


@lru_cache(maxsize=16)
def build_arg_shapes(registry: FieldRegistry, route: str) -> tuple[ArgShape, ...]:
    if route not in ROUTES:
        raise KeyError(f"Unknown listing route: {route}")

    shapes = _fixed_shapes(route)
    taken = {s.name for s in shapes}
    for definition in registry.meta_fields():
        if definition.shortname in taken:
            continue
        if definition.field_type == "url":
            shapes.append(ArgShape(definition.shortname, ("array", "string"), items="string", description=definition.label))
        else:
            shapes.append(ArgShape(definition.shortname, ("string",), description=definition.label))
    return tuple(shapes)


def _coerce(value: Any, kind: str) -> tuple[bool, Any]:
    if kind == "integer":
        if isinstance(value, bool):
            return False, value
        if isinstance(value, int):
            return True, value
        if isinstance(value, str) and _INT_RE.match(value):
            return True, int(value)
        return False, value
    if kind == "string":
        if isinstance(value, str):
            return True, value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return True, str(value)
        return False, value
    if kind == "array":
        return isinstance(value, list), value
    if kind == "object":
        return isinstance(value, dict), value
    return False, value


def coerce_args(raw: dict[str, Any], shapes: tuple[ArgShape, ...]) -> dict[str, Any] | ApiError:
    """
    Check declared args: required ones present, typed ones coercible.
    Undeclared keys pass through untouched.
    """
    missing = [s.name for s in shapes if s.required and (raw.get(s.name) is None or raw.get(s.name) == "")]
    if missing:
        return fail("rest_missing_callback_param", f"Missing parameter(s): {', '.join(missing)}", 400, params=missing)

    out = dict(raw)
    for shape in shapes:
        if shape.name not in raw:
            continue
        value = raw[shape.name]
        if value is None or value == "":
            continue
        for kind in shape.types:
            ok, coerced = _coerce(value, kind)
            if ok:
                out[shape.name] = coerced
                break
        else:
            expected = " or ".join(shape.types)
            return fail("rest_invalid_param", f"{shape.name} is not of type {expected}.", 400, params={shape.name: expected})
    return out
