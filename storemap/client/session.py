"""Map session: owns the map surface, filter state, markers and summary request."""

from __future__ import annotations

from concurrent.futures import Future
from typing import Iterable

from storemap.client.filters import FilterState, apply_filters
from storemap.client.markers import MapSurface, MarkerDiff, MarkerLifecycleManager, MarkerStyle, PolygonStyle
from storemap.client.summary import SummaryRequester, SummaryState, SummaryTransport
from storemap.common.models import CustomerRecord
from storemap.pipeline.aggregate import summarize, top_n

PROVINCE_STYLE = PolygonStyle(stroke_color="#0088ff", stroke_weight=1.5, stroke_opacity=0.6)
CITY_STYLE = PolygonStyle(stroke_color="#888888", stroke_weight=0.8, stroke_opacity=0.4)

BoundaryPath = list[tuple[float, float]]


class MapSession:
    def __init__(
        self,
        surface: MapSurface,
        app_config: dict,
        *,
        summary_transport: SummaryTransport | None = None,
    ) -> None:
        self.surface = surface
        self.app_config = app_config
        self.brand_delimiters = app_config["filters"]["brand_delimiters"]
        self.unknown_label = app_config["transform"]["unknown_label"]
        self.markers = MarkerLifecycleManager(
            surface,
            on_select=self.select,
            style=MarkerStyle.from_config(app_config["map"]),
        )
        self.summary = SummaryRequester(summary_transport) if summary_transport is not None else None

        self.records: list[CustomerRecord] = []
        self.filter_state = FilterState()
        self.visible: list[CustomerRecord] = []
        self.selected: CustomerRecord | None = None
        self.last_diff: MarkerDiff | None = None
        self._map = None

    @property
    def is_open(self) -> bool:
        return self._map is not None

    def open(
        self,
        records: Iterable[CustomerRecord] = (),
        *,
        province_boundaries: Iterable[BoundaryPath] = (),
        city_boundaries: Iterable[BoundaryPath] = (),
    ) -> None:
        if self._map is not None:
            return
        map_cfg = self.app_config["map"]
        lng, lat = map_cfg["center"]
        self._map = self.surface.create_map((float(lng), float(lat)), int(map_cfg["zoom"]))
        for path in province_boundaries:
            self.surface.draw_polygon(path, PROVINCE_STYLE)
        for path in city_boundaries:
            self.surface.draw_polygon(path, CITY_STYLE)
        self.set_records(records)

    def close(self) -> None:
        if self.summary is not None:
            self.summary.cancel()
        self.markers.clear()
        if self._map is not None:
            self.surface.destroy_map()
            self._map = None
        self.selected = None

    def _recompute(self) -> None:
        self.visible = apply_filters(self.records, self.filter_state, brand_delimiters=self.brand_delimiters)
        if self._map is not None:
            self.last_diff = self.markers.sync(self.visible)
        if self.selected is not None and all(record.id != self.selected.id for record in self.visible):
            self.selected = None

    def set_records(self, records: Iterable[CustomerRecord]) -> None:
        self.records = list(records)
        self._recompute()

    def set_filter_state(self, state: FilterState) -> None:
        self.filter_state = state
        self._recompute()

    def set_search(self, query: str) -> None:
        self.set_filter_state(self.filter_state.with_search(query))

    def toggle_region(self, region: str) -> None:
        self.set_filter_state(self.filter_state.toggle_region(region))

    def toggle_brand(self, brand: str) -> None:
        self.set_filter_state(self.filter_state.toggle_brand(brand))

    def clear_regions(self) -> None:
        self.set_filter_state(self.filter_state.clear_regions())

    def clear_brands(self) -> None:
        self.set_filter_state(self.filter_state.clear_brands())

    def select(self, record: CustomerRecord) -> None:
        self.selected = record

    def deselect(self) -> None:
        self.selected = None

    @property
    def active_filter_count(self) -> int:
        return self.filter_state.active_count

    def stats(self, top: int = 5) -> dict:
        summary = summarize(self.visible, unknown_label=self.unknown_label)
        return {
            "total": summary.total,
            "totalVolume": 0,
            "topProducts": [{"name": name, "count": count} for name, count in top_n(summary.by_product, top)],
        }

    def summary_payload(self) -> dict:
        return {
            "customers": [record.to_dict() for record in self.visible],
            "stats": self.stats(),
            "filters": {
                "brandFilter": sorted(self.filter_state.brand_filter),
                "regionFilter": sorted(self.filter_state.region_filter),
            },
            "searchQuery": self.filter_state.search_query,
        }

    def request_summary(self) -> Future:
        if self.summary is None:
            raise RuntimeError("map session has no summary transport")
        return self.summary.request(self.summary_payload())

    def close_summary(self) -> None:
        if self.summary is not None:
            self.summary.cancel()

    def dispose(self) -> None:
        """Close the map and release the summary worker; the session is not reusable afterwards."""
        self.close()
        if self.summary is not None:
            self.summary.close()

    @property
    def summary_state(self) -> SummaryState:
        return self.summary.state if self.summary is not None else SummaryState()
