from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable

from app.core.errors import ApiError, fail
from app.services.normalizer import REGION_KEYS, ListingPayload, is_empty
from app.services.registry import FieldDefinition, FieldRegistry
from app.services.taxonomy import TaxonomyKind, TaxonomyLookups

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CleanPayload:
    """
    Validated payload. Every meta entry maps to a known field and every
    region/category/tag has been resolved to a term id.
    None means "not supplied" for a group.
    """
    entity_id: int | None = None
    title: str | None = None
    status: str | None = None
    featured_image: int | None = None
    meta: tuple[tuple[FieldDefinition, Any], ...] = ()
    region_ids: tuple[int, ...] | None = None
    category_ids: tuple[int, ...] | None = None
    tag_ids: tuple[int, ...] | None = None
    extra_meta: dict[str, Any] = field(default_factory=dict)


Stage = Callable[[CleanPayload, ListingPayload, FieldRegistry, TaxonomyLookups], "CleanPayload | ApiError"]


def _meta_field(registry: FieldRegistry, key: str) -> FieldDefinition | None:
    definition = registry.find(key) or registry.find_by_meta_key(key)
    if definition is None or definition.association != "meta":
        return None
    return definition


def _optional_int(name: str, value: Any) -> int | None | ApiError:
    if is_empty(value):
        return None
    if isinstance(value, bool):
        return fail("rest_invalid_param", f"{name} must be an integer.", 400, param=name)
    try:
        return int(value)
    except (TypeError, ValueError):
        return fail("rest_invalid_param", f"{name} must be an integer.", 400, param=name)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).strip()


def check_system_fields(clean, payload, registry, lookups):
    entity_id = _optional_int("id", payload.system.get("id"))
    if isinstance(entity_id, ApiError):
        return entity_id
    image_id = _optional_int("featured_image", payload.system.get("featured_image"))
    if isinstance(image_id, ApiError):
        return image_id
    status = _optional_str(payload.system.get("status"))
    return replace(
        clean,
        entity_id=entity_id,
        title=_optional_str(payload.system.get("title")),
        status=status or None,
        featured_image=image_id,
    )


def check_meta_payload(clean, payload, registry, lookups):
    """Keys of the generic `meta` object must all be known fields (shortname or meta key)."""
    meta = payload.meta
    if is_empty(meta):
        return clean
    if not isinstance(meta, dict):
        return fail("invalid_meta_fields", "Meta payload must be an object.", 400, invalid_fields=[])

    invalid = [key for key in meta if _meta_field(registry, key) is None]
    if invalid:
        return fail(
            "invalid_meta_fields",
            "Invalid field(s) detected in meta payload.",
            400,
            invalid_fields=invalid,
        )

    extra = {}
    for key, value in meta.items():
        if is_empty(value):
            continue
        extra[_meta_field(registry, key).shortname] = value
    return replace(clean, extra_meta=extra)


def check_meta_membership(clean, payload, registry, lookups):
    resolved: list[tuple[FieldDefinition, Any]] = []
    seen = set()
    for key, value in payload.dynamic.items():
        definition = registry.find(key)
        if definition is None or definition.association != "meta":
            return fail("invalid_field", f"Unknown field: {key}", 400, field=key)
        resolved.append((definition, value))
        seen.add(definition.shortname)

    # explicit top-level keys win over the generic meta object
    for shortname, value in clean.extra_meta.items():
        if shortname not in seen:
            resolved.append((registry.find(shortname), value))

    return replace(clean, meta=tuple(resolved))


def check_regions(clean, payload, registry, lookups):
    values = [(key, payload.regions.get(key)) for key in REGION_KEYS]
    if all(is_empty(v) for _, v in values):
        return clean

    gap = None
    for key, value in values:
        if is_empty(value):
            gap = gap or key
        elif gap is not None:
            return fail(
                "invalid_region_hierarchy",
                f"Region {key} cannot be set while {gap} is empty.",
                400,
                field=key,
                missing=gap,
            )

    ids = []
    for key, value in values:
        if is_empty(value):
            break
        term_id = lookups.find_term_id(TaxonomyKind.REGION, value)
        if term_id is None:
            return fail("invalid_region", f"Unknown {key}: {value}", 400, field=key, value=value)
        # state and city may share a name, hence a term
        if term_id not in ids:
            ids.append(term_id)
    return replace(clean, region_ids=tuple(ids))


def _resolve_names(kind: TaxonomyKind, names: Any, lookups: TaxonomyLookups, malformed_code: str, unknown_code: str):
    if not isinstance(names, list):
        return fail(malformed_code, f"{kind.value} list is malformed.", 400, value=names)

    ids: list[int] = []
    for name in names:
        if isinstance(name, bool) or not isinstance(name, (str, int)):
            return fail(malformed_code, f"{kind.value} names must be strings.", 400, value=name)
        if is_empty(name):
            continue
        term_id = lookups.find_term_id(kind, name)
        if term_id is None:
            return fail(unknown_code, f"Unknown {kind.value}: {name}", 400, value=name)
        if term_id not in ids:
            ids.append(term_id)
    return tuple(ids)


def check_categories(clean, payload, registry, lookups):
    if payload.categories is None:
        return clean
    ids = _resolve_names(TaxonomyKind.CATEGORY, payload.categories, lookups, "invalid_categories", "invalid_category")
    if isinstance(ids, ApiError):
        return ids
    return replace(clean, category_ids=ids)


def check_tags(clean, payload, registry, lookups):
    if payload.tags is None:
        return clean
    ids = _resolve_names(TaxonomyKind.TAG, payload.tags, lookups, "invalid_tags", "invalid_tag")
    if isinstance(ids, ApiError):
        return ids
    return replace(clean, tag_ids=ids)


# Local checks first, lookup-backed checks last.
VALIDATION_STAGES: tuple[Stage, ...] = (
    check_system_fields,
    check_meta_payload,
    check_meta_membership,
    check_regions,
    check_categories,
    check_tags,
)


def validate(payload: ListingPayload, registry: FieldRegistry, lookups: TaxonomyLookups) -> CleanPayload | ApiError:
    clean = CleanPayload()
    for stage in VALIDATION_STAGES:
        result = stage(clean, payload, registry, lookups)
        if isinstance(result, ApiError):
            log.info("validation stopped at %s: %s", stage.__name__, result.code)
            return result
        clean = result
    return clean
