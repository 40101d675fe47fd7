"""Prompt construction for the filtered-view summary."""

from __future__ import annotations

from dataclasses import dataclass, field

from storemap.pipeline.aggregate import Summary, share_percent, top_n

NONE_LABEL = "无"


@dataclass(frozen=True)
class FilterContext:
    search_query: str = ""
    regions: tuple[str, ...] = field(default_factory=tuple)
    brands: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_request(cls, filters: dict | None, search_query: str | None) -> "FilterContext":
        filters = filters or {}
        return cls(
            search_query=(search_query or "").strip(),
            regions=tuple(str(v) for v in filters.get("regionFilter") or []),
            brands=tuple(str(v) for v in filters.get("brandFilter") or []),
        )

    def describe(self) -> list[str]:
        parts = []
        if self.search_query:
            parts.append(f"关键词「{self.search_query}」")
        if self.regions:
            parts.append(f"省区「{'、'.join(self.regions)}」")
        if self.brands:
            parts.append(f"品牌「{'、'.join(self.brands)}」")
        return parts


def _distribution(counts: dict[str, int], total: int, limit: int | None = None) -> str:
    lines = [
        f"- {name}：{count}条 ({share_percent(count, total):.1f}%)"
        for name, count in top_n(counts, limit)
    ]
    return "\n".join(lines) or f"- {NONE_LABEL}"


def build_summary_prompt(
    summary: Summary,
    context: FilterContext,
    *,
    total: int | None = None,
    top_products: int = 5,
) -> str:
    total = summary.total if total is None else total
    samples = "\n".join(f"- {product}: {discount}" for product, discount in summary.discount_samples)
    conditions = "、".join(context.describe()) or "未设置筛选条件"

    return "\n".join(
        [
            "你是一名竞品数据分析助手。用户在地图上按搜索或筛选条件查看了一组竞品记录，请对这组结果做简要总结。",
            "",
            "## 筛选条件",
            f"- 搜索关键词：{context.search_query or NONE_LABEL}",
            f"- 省区筛选：{'、'.join(context.regions) or NONE_LABEL}",
            f"- 品牌筛选：{'、'.join(context.brands) or NONE_LABEL}",
            "",
            f"## 筛选结果（共 {total} 条记录）",
            "",
            "### 竞品品牌分布",
            _distribution(summary.by_brand, total),
            "",
            f"### 竞品产品分布（前 {top_products} 名）",
            _distribution(summary.by_product, total, top_products),
            "",
            "### 省区分布",
            _distribution(summary.by_region, total),
            "",
            f"### 折扣/价格样例（最多 {len(summary.discount_samples) or 5} 条）",
            samples or "- 暂无折扣信息",
            "",
            "## 输出要求",
            f"说明在{conditions}下找到了多少条记录，主要品牌及占比，主要竞品产品，折扣或价格的整体情况，以及地域分布特点。",
            "语言简洁专业，写成两到三段自然段落，不要使用列表。",
        ]
    )
