"""Filter state and the visible-set computation."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Iterable

from storemap.common.models import CustomerRecord

DEFAULT_BRAND_DELIMITERS = "、,，"


@dataclass(frozen=True)
class FilterState:
    """Immutable filter selection; every change produces a new instance."""

    search_query: str = ""
    region_filter: frozenset[str] = field(default_factory=frozenset)
    brand_filter: frozenset[str] = field(default_factory=frozenset)

    def with_search(self, query: str) -> "FilterState":
        return replace(self, search_query=query)

    def toggle_region(self, region: str) -> "FilterState":
        return replace(self, region_filter=self.region_filter ^ {region})

    def toggle_brand(self, brand: str) -> "FilterState":
        return replace(self, brand_filter=self.brand_filter ^ {brand})

    def clear_regions(self) -> "FilterState":
        return replace(self, region_filter=frozenset())

    def clear_brands(self) -> "FilterState":
        return replace(self, brand_filter=frozenset())

    @property
    def active_count(self) -> int:
        return len(self.region_filter) + len(self.brand_filter)


def _delimiter_pattern(delimiters: str) -> re.Pattern:
    return re.compile(f"[{re.escape(delimiters)}]")


def split_brands(brand: str, delimiters: str = DEFAULT_BRAND_DELIMITERS) -> set[str]:
    if not brand:
        return set()
    parts = (part.strip() for part in _delimiter_pattern(delimiters).split(brand))
    return {part for part in parts if part}


def matches_search(record: CustomerRecord, query: str) -> bool:
    needle = query.strip().casefold()
    if not needle:
        return True
    haystacks = (record.name, record.product_name, record.brand, record.address)
    return any(needle in (value or "").casefold() for value in haystacks)


def matches_region(record: CustomerRecord, regions: frozenset[str]) -> bool:
    return not regions or (record.region or "") in regions


def matches_brand(record: CustomerRecord, brands: frozenset[str], delimiters: str = DEFAULT_BRAND_DELIMITERS) -> bool:
    return not brands or bool(split_brands(record.brand, delimiters) & brands)


def apply_filters(
    records: Iterable[CustomerRecord],
    state: FilterState,
    *,
    brand_delimiters: str = DEFAULT_BRAND_DELIMITERS,
) -> list[CustomerRecord]:
    """Records passing every active filter, in their original order."""
    return [
        record
        for record in records
        if matches_search(record, state.search_query)
        and matches_region(record, state.region_filter)
        and matches_brand(record, state.brand_filter, brand_delimiters)
    ]
