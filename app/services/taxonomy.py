from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.term import Term, TermMeta
from app.services.region_aliases import normalize_region_name

log = logging.getLogger(__name__)

ENABLED_META_KEY = "enabled"


class TaxonomyKind(str, Enum):
    REGION = "region"
    CATEGORY = "category"
    TAG = "tag"

    @property
    def taxonomy(self) -> str:
        return _TAXONOMY_NAMES[self]


_TAXONOMY_NAMES = {
    TaxonomyKind.REGION: "wpbdp_region",
    TaxonomyKind.CATEGORY: "wpbdp_category",
    TaxonomyKind.TAG: "wpbdp_tag",
}


class LookupNotLoaded(RuntimeError):
    """A term lookup was attempted before its taxonomy was preloaded."""


def lookup_key(name: Any) -> str:
    return str(name if name is not None else "").strip().lower()


def is_disabled(flag: Any) -> bool:
    # only an explicit false disables a term; missing meta means enabled
    if flag is False:
        return True
    return isinstance(flag, str) and flag.strip().lower() == "false"


@dataclass(frozen=True)
class TermLookup:
    kind: TaxonomyKind
    terms: Mapping[str, int]
    # (name, dropped_term_id, kept_term_id)
    collisions: tuple[tuple[str, int, int], ...] = ()

    def get(self, name: str) -> int | None:
        return self.terms.get(name)

    def as_dict(self) -> dict[str, int]:
        return dict(self.terms)


def build_lookup(kind: TaxonomyKind, rows: Iterable[tuple[int, str, Any]]) -> TermLookup:
    """
    Build name -> term id from (term_id, name, enabled_flag) rows.
    Disabled terms are left out entirely. Same normalized name: last row wins.
    """
    table: dict[str, int] = {}
    collisions: list[tuple[str, int, int]] = []
    skipped = 0

    for term_id, name, enabled_flag in rows:
        if is_disabled(enabled_flag):
            skipped += 1
            continue
        key = lookup_key(name)
        if not key:
            continue
        previous = table.get(key)
        if previous is not None and previous != term_id:
            collisions.append((key, previous, term_id))
            log.warning("%s lookup: name %r maps to terms %s and %s, keeping %s", kind.value, key, previous, term_id, term_id)
        table[key] = int(term_id)

    log.info("%s lookup built: %d terms, %d disabled", kind.value, len(table), skipped)
    return TermLookup(kind=kind, terms=MappingProxyType(table), collisions=tuple(collisions))


async def preload_lookup(db: AsyncSession, kind: TaxonomyKind) -> TermLookup:
    stmt = (
        select(Term.id, Term.name, TermMeta.meta_value)
        .outerjoin(TermMeta, and_(TermMeta.term_id == Term.id, TermMeta.meta_key == ENABLED_META_KEY))
        .where(Term.taxonomy == kind.taxonomy)
        .order_by(Term.id.asc())
    )
    rows = (await db.execute(stmt)).all()
    return build_lookup(kind, rows)


@dataclass(frozen=True)
class TaxonomyLookups:
    """Term lookups of one serving context. Built once, then only read."""
    lookups: Mapping[TaxonomyKind, TermLookup] = field(default_factory=dict)

    def lookup(self, kind: TaxonomyKind) -> TermLookup:
        found = self.lookups.get(kind)
        if found is None:
            raise LookupNotLoaded(f"{kind.value} terms were not preloaded")
        return found

    def find_term_id(self, kind: TaxonomyKind, raw_name: Any) -> int | None:
        table = self.lookup(kind)
        if kind is TaxonomyKind.REGION:
            return table.get(normalize_region_name(raw_name))
        return table.get(lookup_key(raw_name))


async def preload_lookups(
    db: AsyncSession,
    kinds: Iterable[TaxonomyKind] = tuple(TaxonomyKind),
) -> TaxonomyLookups:
    built = {}
    for kind in kinds:
        built[kind] = await preload_lookup(db, kind)
    return TaxonomyLookups(lookups=MappingProxyType(built))
