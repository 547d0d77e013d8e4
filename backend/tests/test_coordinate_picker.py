"""
PlantLog Client — Coordinate Picker Tests
"""

from app.client.coordinate_picker import DEFAULT_CENTER, DEFAULT_ZOOM, CoordinatePicker


def test_starts_on_default_view_with_nothing_picked():
    picker = CoordinatePicker()
    assert picker.center == DEFAULT_CENTER == (122.0, 13.0)
    assert picker.zoom == DEFAULT_ZOOM == 4
    assert picker.marker == DEFAULT_CENTER
    assert picker.as_location("anything") is None


def test_drag_end_rounds_and_notifies():
    seen = []
    picker = CoordinatePicker(on_change=lambda lng, lat: seen.append((lng, lat)))

    picked = picker.drag_end(121.043712345, 14.676049)

    assert picked == (121.0437, 14.676)
    assert seen == [(121.0437, 14.676)]
    assert picker.marker == (121.043712345, 14.676049)
    assert picker.as_location("Creek bank") == {"lng": 121.0437, "lat": 14.676, "desc": "Creek bank"}


def test_reset_clears_pick():
    picker = CoordinatePicker()
    picker.drag_end(120.0, 15.0)
    picker.reset()
    assert picker.as_location() is None
    assert picker.marker == DEFAULT_CENTER
