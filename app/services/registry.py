from __future__ import annotations

import logging
import re
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Iterable, Iterator

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db import get_db
from app.models.form_field import FormField
from app.models.option import Option

log = logging.getLogger(__name__)

# Only these associations are exposed; title/category/tags fields are handled natively.
REGISTRY_ASSOCIATIONS = ("meta", "region")

_UNSAFE_KEY_CHARS = re.compile(r"[^a-z0-9_\-]")


def sanitize_key(value: Any) -> str:
    """Lower-case and strip everything outside [a-z0-9_-]."""
    return _UNSAFE_KEY_CHARS.sub("", str(value if value is not None else "").lower())


def field_meta_key(field_id: int) -> str:
    return f"_wpbdp[fields][{field_id}]"


@dataclass(frozen=True)
class FieldDefinition:
    id: int
    shortname: str
    label: str
    association: str
    field_type: str
    validators: str

    @property
    def meta_key(self) -> str:
        return field_meta_key(self.id)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FieldDefinition":
        return cls(
            id=int(data["id"]),
            shortname=sanitize_key(data.get("shortname")),
            label=str(data.get("label") or ""),
            association=sanitize_key(data.get("association")),
            field_type=sanitize_key(data.get("field_type")),
            validators=str(data.get("validators") or ""),
        )


@dataclass(frozen=True)
class FieldRegistry:
    """
    Immutable snapshot of the field definitions.
    Never mutated after construction; a refresh builds a new one.
    """
    fields: tuple[FieldDefinition, ...] = ()

    def __iter__(self) -> Iterator[FieldDefinition]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    @property
    def is_empty(self) -> bool:
        return not self.fields

    def find(self, shortname: str) -> FieldDefinition | None:
        # registry is small (admin-configured form fields): linear scan
        for f in self.fields:
            if f.shortname == shortname:
                return f
        return None

    def find_by_meta_key(self, meta_key: str) -> FieldDefinition | None:
        for f in self.fields:
            if f.meta_key == meta_key:
                return f
        return None

    def meta_fields(self) -> tuple[FieldDefinition, ...]:
        return tuple(f for f in self.fields if f.association == "meta")

    def as_payload(self) -> list[dict[str, Any]]:
        return [f.as_dict() for f in self.fields]

    @classmethod
    def from_rows(cls, rows: Iterable[dict[str, Any]]) -> "FieldRegistry":
        fields = sorted((FieldDefinition.from_dict(r) for r in rows), key=lambda f: f.id)
        return cls(fields=tuple(fields))


def _row_to_dict(row: FormField) -> dict[str, Any]:
    return {
        "id": row.id,
        "shortname": row.shortname,
        "label": row.label,
        "association": row.association,
        "field_type": row.field_type,
        "validators": row.validators,
    }


async def refresh_registry(db: AsyncSession) -> FieldRegistry:
    """
    Rebuild the registry from the field store and persist it to the option slot.
    No rows means an empty registry, never the previous one.
    """
    rows = (
        await db.execute(
            select(FormField)
            .where(FormField.association.in_(REGISTRY_ASSOCIATIONS))
            .order_by(FormField.id.asc())
        )
    ).scalars().all()

    registry = FieldRegistry.from_rows(_row_to_dict(r) for r in rows)

    await db.merge(Option(key=settings.registry_option_key, value=registry.as_payload()))
    await db.commit()

    log.info("field registry refreshed: %d fields", len(registry))
    return registry


async def load_registry(db: AsyncSession) -> FieldRegistry:
    """Read the persisted snapshot; build it if the slot was never written."""
    option = await db.get(Option, settings.registry_option_key, populate_existing=True)
    if option is None:
        log.info("field registry slot %r empty, building", settings.registry_option_key)
        return await refresh_registry(db)
    return FieldRegistry.from_rows(option.value or [])


class RegistryCache:
    """
    Per-process holder of the current FieldRegistry snapshot.

    Invalidation is event driven (field saved / field deleted call refresh()).
    Other processes see a refresh through the option slot within
    max_age_seconds. The snapshot is swapped by reference, never edited.
    """

    def __init__(self, max_age_seconds: float | None = None, clock: Callable[[], float] = time.monotonic):
        self._max_age = settings.registry_max_age_seconds if max_age_seconds is None else max_age_seconds
        self._clock = clock
        self._snapshot: FieldRegistry | None = None
        self._loaded_at = 0.0

    async def get(self, db: AsyncSession) -> FieldRegistry:
        snapshot = self._snapshot
        if snapshot is not None and (self._clock() - self._loaded_at) < self._max_age:
            return snapshot
        snapshot = await load_registry(db)
        self._swap(snapshot)
        return snapshot

    async def refresh(self, db: AsyncSession) -> FieldRegistry:
        snapshot = await refresh_registry(db)
        self._swap(snapshot)
        return snapshot

    def invalidate(self) -> None:
        self._snapshot = None

    def _swap(self, snapshot: FieldRegistry) -> None:
        self._loaded_at = self._clock()
        self._snapshot = snapshot


def get_registry_cache(request: Request) -> RegistryCache:
    return request.app.state.registry_cache


async def get_registry(
    cache: RegistryCache = Depends(get_registry_cache),
    db: AsyncSession = Depends(get_db),
) -> FieldRegistry:
    return await cache.get(db)
