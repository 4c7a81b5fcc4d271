from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from app.core.errors import ApiError, fail
from app.services.registry import FieldRegistry

log = logging.getLogger(__name__)

SYSTEM_KEYS = ("id", "title", "status", "featured_image")
REGION_KEYS = ("country", "state", "city")  # root first
TAXONOMY_KEYS = ("categories", "tags")
META_PAYLOAD_KEY = "meta"


@dataclass
class ListingPayload:
    """Request body split by key class; values are coerced but not yet validated."""
    system: dict[str, Any] = field(default_factory=dict)
    regions: dict[str, Any] = field(default_factory=dict)
    categories: Any = None
    tags: list[Any] | None = None
    dynamic: dict[str, Any] = field(default_factory=dict)
    meta: Any = None


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def _decode_json(value: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(value)
    except ValueError:
        return False, None


def coerce_url_value(value: Any) -> Any:
    # url fields may carry a JSON-encoded [url, label] array in a plain string
    if not isinstance(value, str):
        return value
    ok, decoded = _decode_json(value)
    if ok and isinstance(decoded, list):
        return decoded
    return value


def coerce_categories(value: Any) -> Any:
    """
    list -> list, JSON list -> list, JSON string -> [decoded], bare string -> [string].
    Anything else is returned untouched; the validator reports it.
    """
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        ok, decoded = _decode_json(value)
        if not ok:
            return [value]
        if isinstance(decoded, list):
            return decoded
        if isinstance(decoded, str):
            return [decoded]
        if isinstance(decoded, (int, float)) and not isinstance(decoded, bool):
            return [value.strip()]
        return decoded
    return value


def coerce_tags(value: Any) -> list[Any] | ApiError:
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        ok, decoded = _decode_json(value)
        if not ok:
            return fail("invalid_tags", "Tags must be an array or a JSON-encoded array.", 400, value=value)
        if isinstance(decoded, list):
            return decoded
    return fail("invalid_tags", "Tags must be an array or a JSON-encoded array.", 400, value=value)


def normalize(raw: dict[str, Any], registry: FieldRegistry) -> ListingPayload | ApiError:
    payload = ListingPayload()

    for key, value in raw.items():
        if key in SYSTEM_KEYS:
            payload.system[key] = value
        elif key in REGION_KEYS:
            payload.regions[key] = value
        elif key == "categories":
            if not is_empty(value):
                payload.categories = coerce_categories(value)
        elif key == "tags":
            if is_empty(value):
                continue
            tags = coerce_tags(value)
            if isinstance(tags, ApiError):
                return tags
            payload.tags = tags
        elif key == META_PAYLOAD_KEY:
            payload.meta = value
        else:
            if is_empty(value):
                log.debug("skipping empty field %r", key)
                continue
            definition = registry.find(key)
            if definition is not None and definition.field_type == "url":
                value = coerce_url_value(value)
            payload.dynamic[key] = value

    # fixed order, root first, whatever order the client sent
    payload.regions = {k: payload.regions.get(k) for k in REGION_KEYS if k in payload.regions}
    return payload
