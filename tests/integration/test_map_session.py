import threading
from pathlib import Path

import pytest

from storemap.client.session import CITY_STYLE, PROVINCE_STYLE, MapSession
from storemap.common.config_loader import load_app_config
from storemap.common.models import CustomerRecord


class FakeSurface:
    def __init__(self):
        self.maps = []
        self.polygons = []
        self.markers = {}
        self.clicks = {}
        self.destroyed = 0
        self._next = 0

    def create_map(self, center, zoom):
        self.maps.append((center, zoom))
        return "map"

    def draw_polygon(self, path, style):
        self.polygons.append((path, style))
        return len(self.polygons)

    def place_marker(self, position, *, label, color):
        self._next += 1
        self.markers[self._next] = (position, label, color)
        return self._next

    def remove_marker(self, handle):
        del self.markers[handle]

    def on_click(self, handle, callback):
        self.clicks[handle] = callback

    def destroy_map(self):
        self.destroyed += 1


def _record(record_id, *, brand="", region="", product="洗衣粉"):
    return CustomerRecord(
        id=record_id,
        name=f"{record_id}店",
        coordinates=(113.0, 34.0),
        product_name=product,
        brand=brand,
        discount_price="",
        distributor="",
        region=region,
        district="",
        address="",
        record_date=None,
    )


RECORDS = [
    _record("a", brand="雕牌", region="山东省区"),
    _record("b", brand="白猫", region="广东省区", product="洗洁精"),
    _record("c", brand="雕牌、白猫", region="山东省区"),
]


def _session(transport=None):
    surface = FakeSurface()
    return MapSession(surface, load_app_config(Path("config")), summary_transport=transport), surface


@pytest.mark.integration
def test_open_draws_boundaries_and_markers():
    session, surface = _session()

    session.open(RECORDS, province_boundaries=[[(1, 1), (2, 2)]], city_boundaries=[[(3, 3)], [(4, 4)]])

    assert surface.maps == [((113.65, 34.76), 7)]
    assert [style for _, style in surface.polygons] == [PROVINCE_STYLE, CITY_STYLE, CITY_STYLE]
    assert sorted(session.markers.marker_ids) == ["a", "b", "c"]
    assert surface.markers[session.markers.handle_for("a")][2] == "#ef4444"


@pytest.mark.integration
def test_filter_changes_diff_markers():
    session, surface = _session()
    session.open(RECORDS)

    session.toggle_brand("白猫")
    assert [r.id for r in session.visible] == ["b", "c"]
    assert session.last_diff.removed == ["a"]
    assert session.active_filter_count == 1

    session.toggle_region("山东省区")
    assert [r.id for r in session.visible] == ["c"]
    assert session.active_filter_count == 2

    session.clear_regions()
    session.clear_brands()
    session.set_search("")
    assert len(surface.markers) == 3
    assert session.last_diff.added == []


@pytest.mark.integration
def test_marker_click_selects_record():
    session, surface = _session()
    session.open(RECORDS)

    surface.clicks[session.markers.handle_for("b")]()
    assert session.selected.id == "b"

    session.deselect()
    assert session.selected is None


@pytest.mark.integration
def test_stats_and_summary_payload_follow_visible_set():
    session, _ = _session()
    session.open(RECORDS)
    session.set_search("雕牌")

    stats = session.stats()
    payload = session.summary_payload()

    assert stats == {"total": 2, "totalVolume": 0, "topProducts": [{"name": "洗衣粉", "count": 2}]}
    assert [c["id"] for c in payload["customers"]] == ["a", "c"]
    assert payload["searchQuery"] == "雕牌"
    assert payload["filters"] == {"brandFilter": [], "regionFilter": []}


@pytest.mark.integration
def test_records_before_open_do_not_place_markers():
    session, surface = _session()

    session.set_records(RECORDS)

    assert len(session.visible) == 3
    assert surface.markers == {}


@pytest.mark.integration
def test_close_clears_markers_and_map():
    session, surface = _session()
    session.open(RECORDS)
    session.select(RECORDS[0])

    session.close()

    assert surface.markers == {}
    assert surface.destroyed == 1
    assert session.is_open is False
    assert session.selected is None


@pytest.mark.integration
def test_summary_request_and_close_summary():
    release = threading.Event()
    seen = []

    def transport(payload, token):
        seen.append(payload)
        release.wait(5)
        return "总结"

    session, _ = _session(transport)
    session.open(RECORDS)
    session.toggle_region("广东省区")

    future = session.request_summary()
    session.close_summary()
    release.set()

    assert future.result(timeout=5) is False
    assert session.summary_state.status == "idle"
    assert session.request_summary().result(timeout=5) is True
    assert session.summary_state.text == "总结"
    assert seen[0]["filters"]["regionFilter"] == ["广东省区"]
    session.dispose()


@pytest.mark.integration
def test_request_summary_without_transport():
    session, _ = _session()

    with pytest.raises(RuntimeError):
        session.request_summary()
    assert session.summary_state.status == "idle"


@pytest.mark.integration
def test_session_can_reopen_and_summarize_after_close():
    session, surface = _session(lambda payload, token: "再次总结")
    session.open(RECORDS)
    session.close()

    session.open(RECORDS)

    assert len(surface.maps) == 2
    assert sorted(session.markers.marker_ids) == ["a", "b", "c"]
    assert session.request_summary().result(timeout=5) is True
    assert session.summary_state.text == "再次总结"
    session.dispose()


@pytest.mark.integration
def test_selection_cleared_when_record_filtered_out():
    session, surface = _session()
    session.open(RECORDS)
    surface.clicks[session.markers.handle_for("a")]()

    session.toggle_brand("雕牌")
    assert session.selected.id == "a"

    session.toggle_region("广东省区")
    assert session.visible == []
    assert session.selected is None
