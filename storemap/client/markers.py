"""Marker lifecycle: keep one map marker per visible record, diffed by record id."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Protocol

from storemap.common.models import CustomerRecord


@dataclass(frozen=True)
class PolygonStyle:
    stroke_color: str
    stroke_weight: float
    stroke_opacity: float
    fill_color: str = "transparent"
    fill_opacity: float = 0.0


class MapSurface(Protocol):
    """Capabilities the mapping SDK has to provide."""

    def create_map(self, center: tuple[float, float], zoom: int) -> Any: ...

    def draw_polygon(self, path: list[tuple[float, float]], style: PolygonStyle) -> Any: ...

    def place_marker(self, position: tuple[float, float], *, label: str, color: str) -> Any: ...

    def remove_marker(self, handle: Any) -> None: ...

    def on_click(self, handle: Any, callback: Callable[[], None]) -> None: ...

    def destroy_map(self) -> None: ...


@dataclass(frozen=True)
class MarkerStyle:
    default_color: str = "#3b82f6"
    brand_colors: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_config(cls, map_config: dict) -> "MarkerStyle":
        return cls(
            default_color=map_config.get("default_pin_color", "#3b82f6"),
            brand_colors=dict(map_config.get("brand_pin_colors") or {}),
        )

    def color_for(self, record: CustomerRecord) -> str:
        return self.brand_colors.get(record.brand, self.default_color)


@dataclass(frozen=True)
class MarkerDiff:
    added: list[str]
    removed: list[str]
    kept: list[str]


class MarkerLifecycleManager:
    def __init__(
        self,
        surface: MapSurface,
        *,
        on_select: Callable[[CustomerRecord], None] | None = None,
        style: MarkerStyle | None = None,
    ) -> None:
        self.surface = surface
        self.on_select = on_select
        self.style = style or MarkerStyle()
        self._handles: dict[str, Any] = {}
        self._records: dict[str, CustomerRecord] = {}

    @property
    def marker_ids(self) -> list[str]:
        return list(self._handles)

    def handle_for(self, record_id: str) -> Any | None:
        return self._handles.get(record_id)

    def _click_callback(self, record_id: str) -> Callable[[], None]:
        def _clicked() -> None:
            record = self._records.get(record_id)
            if record is not None and self.on_select is not None:
                self.on_select(record)

        return _clicked

    def sync(self, visible: Iterable[CustomerRecord]) -> MarkerDiff:
        wanted: dict[str, CustomerRecord] = {}
        for record in visible:
            wanted.setdefault(record.id, record)

        removed = [record_id for record_id in self._handles if record_id not in wanted]
        for record_id in removed:
            self.surface.remove_marker(self._handles.pop(record_id))
            self._records.pop(record_id, None)

        added: list[str] = []
        kept: list[str] = []
        for record_id, record in wanted.items():
            # Persisting handles stay in place; only the record behind the click is refreshed.
            self._records[record_id] = record
            if record_id in self._handles:
                kept.append(record_id)
                continue
            handle = self.surface.place_marker(record.coordinates, label=record.name, color=self.style.color_for(record))
            self.surface.on_click(handle, self._click_callback(record_id))
            self._handles[record_id] = handle
            added.append(record_id)

        return MarkerDiff(added=added, removed=removed, kept=kept)

    def clear(self) -> None:
        for handle in self._handles.values():
            self.surface.remove_marker(handle)
        self._handles.clear()
        self._records.clear()
