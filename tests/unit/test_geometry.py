from __future__ import annotations

import pytest
from domain.geometry import DisplayGeometry, cover_scale, map_location
from ports.decode import Point


def _geom(dw: int, dh: int, rw: int, rh: int) -> DisplayGeometry:
    return DisplayGeometry(
        display_width=dw, display_height=dh, resolution_width=rw, resolution_height=rh
    )


def test_center_of_cropped_stream_lands_in_center_of_box():
    g = _geom(320, 320, 640, 480)
    out = map_location({"top_left": Point(320, 240)}, g)
    assert out["top_left"] == Point(160, 160)


def test_cover_scale_takes_larger_ratio():
    assert cover_scale(_geom(320, 320, 640, 480)) == pytest.approx(320 / 480)
    assert cover_scale(_geom(200, 100, 100, 100)) == 2.0


def test_same_size_floors_fractional_pixels():
    g = _geom(100, 100, 100, 100)
    out = map_location({"p": Point(10.7, 20.2)}, g)
    assert out["p"] == Point(10, 20)


def test_overflow_axis_is_shifted_negative():
    # 100x100 stream in a 200x100 box: scale 2, 200x200 uncut, 50 px cut top and bottom
    g = _geom(200, 100, 100, 100)
    out = map_location({"a": Point(0, 0), "b": Point(50, 50), "c": Point(100, 100)}, g)
    assert out["a"] == Point(0, -50)
    assert out["b"] == Point(100, 50)
    assert out["c"] == Point(200, 150)


def test_every_corner_is_mapped_and_input_untouched():
    loc = {
        "top_left": Point(100, 100),
        "top_right": Point(200, 100),
        "bottom_right": Point(200, 200),
        "bottom_left": Point(100, 200),
    }
    out = map_location(loc, _geom(640, 480, 640, 480))
    assert set(out) == set(loc)
    assert out == loc
    assert loc["top_left"] == Point(100, 100)


def test_mapping_is_deterministic():
    g = _geom(375, 667, 1280, 720)
    loc = {"p": Point(333.3, 123.4)}
    assert map_location(loc, g) == map_location(loc, g)


def test_zero_resolution_is_rejected():
    g = _geom(320, 320, 0, 0)
    assert g.has_resolution is False
    with pytest.raises(ValueError):
        map_location({"p": Point(1, 1)}, g)
