"""Descriptive statistics over an arbitrary subset of customer records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from storemap.common.models import CustomerRecord

DEFAULT_SAMPLE_LIMIT = 5


@dataclass
class Summary:
    total: int = 0
    by_brand: dict[str, int] = field(default_factory=dict)
    by_product: dict[str, int] = field(default_factory=dict)
    by_region: dict[str, int] = field(default_factory=dict)
    discount_samples: list[tuple[str, str]] = field(default_factory=list)

    def to_dict(self, top: int | None = None) -> dict:
        return {
            "total": self.total,
            "byBrand": [{"name": k, "count": v} for k, v in top_n(self.by_brand)],
            "byProduct": [{"name": k, "count": v} for k, v in top_n(self.by_product, top)],
            "byRegion": [{"name": k, "count": v} for k, v in top_n(self.by_region)],
            "discountSamples": [{"product": p, "discount": d} for p, d in self.discount_samples],
        }


def _bump(counts: dict[str, int], key: str) -> None:
    counts[key] = counts.get(key, 0) + 1


def summarize(
    records: Iterable[CustomerRecord],
    *,
    unknown_label: str = "未知",
    sample_limit: int = DEFAULT_SAMPLE_LIMIT,
) -> Summary:
    summary = Summary()
    for record in records:
        summary.total += 1
        _bump(summary.by_brand, record.brand or unknown_label)
        _bump(summary.by_product, record.product_name or unknown_label)
        _bump(summary.by_region, record.region or unknown_label)
        if record.discount_price and len(summary.discount_samples) < sample_limit:
            summary.discount_samples.append((record.product_name or unknown_label, record.discount_price))
    return summary


def top_n(counts: dict[str, int], n: int | None = None) -> list[tuple[str, int]]:
    """Rank by count, descending; equal counts keep first-encountered order."""
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return ranked if n is None else ranked[:n]


def share_percent(count: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(count / total * 100, 1)
