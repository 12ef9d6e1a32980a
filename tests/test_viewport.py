import pytest

from tilebrot.settings import EngineSettings
from tilebrot.viewport import ViewportState


def fractal_point(vp, sx=0, sy=0):
    """Fractal coordinate under a screen offset from the view center."""
    return ((vp.center_x + sx) / vp.zoom, (vp.center_y + sy) / vp.zoom)


def test_default_view():
    vp = ViewportState.default(1000, 800)
    assert (vp.center_x, vp.center_y, vp.zoom, vp.max_iter) == (-100, 0, 200, 800)
    assert (vp.width, vp.height) == (1000, 800)
    assert vp.generation == (200, 800)


def test_floors_applied_on_creation():
    vp = ViewportState(100, 100, 0, 0, zoom=3, max_iter=10)
    assert vp.zoom == 16
    assert vp.max_iter == 100


def test_pan_round_trip_is_exact():
    vp = ViewportState.default(640, 480)
    vp.pan(37, -12)
    assert (vp.center_x, vp.center_y) == (-63, -12)
    vp.pan(-37, 12)
    assert (vp.center_x, vp.center_y) == (-100, 0)


def test_zoom_keeps_pivot_point_fixed():
    vp = ViewportState.default(800, 600)
    before = fractal_point(vp, 150, -90)
    assert vp.zoom_by(1, 150, -90)
    assert vp.zoom == 266
    after = fractal_point(vp, 150, -90)
    assert after[0] == pytest.approx(before[0], abs=1 / vp.zoom)
    assert after[1] == pytest.approx(before[1], abs=1 / vp.zoom)


def test_zoom_about_center_keeps_center_point():
    vp = ViewportState(100, 100, 0, 0, zoom=200, max_iter=100,
                       settings=EngineSettings(zoom_step=1.5))
    vp.zoom_by(1, 0, 0)
    assert vp.zoom == 300
    assert (vp.center_x, vp.center_y) == (0, 0)


def test_zoom_out_floors():
    vp = ViewportState.default(800, 600)
    vp.zoom_by(-50)
    assert vp.zoom == 16
    assert not vp.zoom_by(-1)
    assert vp.zoom == 16


def test_resize_scales_zoom_with_height():
    vp = ViewportState(800, 800, 0, 0, zoom=200, max_iter=100)
    assert vp.resize(800, 1600)
    assert vp.zoom == 400
    assert (vp.center_x, vp.center_y) == (0, 0)
    assert (vp.width, vp.height) == (800, 1600)


def test_resize_keeps_center_point():
    vp = ViewportState(800, 800, -100, 50, zoom=200, max_iter=100)
    before = fractal_point(vp)
    vp.resize(1000, 1200)
    assert vp.zoom == 300
    after = fractal_point(vp)
    assert after[0] == pytest.approx(before[0], abs=1e-12)
    assert after[1] == pytest.approx(before[1], abs=1e-12)


def test_resize_uneven_ratio_within_a_pixel():
    vp = ViewportState(800, 777, -1234, 567, zoom=211, max_iter=100)
    before = fractal_point(vp)
    vp.resize(800, 1000)
    after = fractal_point(vp)
    assert after[0] == pytest.approx(before[0], abs=1 / vp.zoom)
    assert after[1] == pytest.approx(before[1], abs=1 / vp.zoom)


def test_width_only_resize_keeps_zoom():
    vp = ViewportState.default(800, 600)
    assert not vp.resize(1200, 600)
    assert vp.zoom == 200
    assert (vp.center_x, vp.center_y) == (-100, 0)
    assert vp.width == 1200


def test_set_iterations_floors_at_100():
    vp = ViewportState.default(800, 600)
    assert vp.set_iterations(800)
    assert vp.max_iter == 1600
    vp.set_iterations(-10000)
    assert vp.max_iter == 100
    assert not vp.set_iterations(-1)


def test_reset_keeps_size():
    vp = ViewportState.default(800, 600)
    vp.pan(10, 10)
    vp.zoom_by(3)
    vp.set_iterations(100)
    vp.resize(500, 400)
    vp.reset()
    assert (vp.center_x, vp.center_y, vp.zoom, vp.max_iter) == (-100, 0, 200, 800)
    assert (vp.width, vp.height) == (500, 400)


def test_pixel_to_complex():
    vp = ViewportState(100, 100, 0, 0, zoom=200, max_iter=100)
    assert vp.pixel_to_complex(50, 50) == (0.0, 0.0)
    c = vp.pixel_to_complex(0, 0)
    assert c.real == pytest.approx(-0.25)
    assert c.imag == pytest.approx(-0.25)


def test_zoom_in_stops_at_ceiling():
    vp = ViewportState.default(800, 600)
    assert vp.zoom_by(200)
    assert vp.zoom == vp.settings.zoom_ceiling == 2 ** 50
    assert not vp.zoom_by(1)
    assert vp.zoom == 2 ** 50
    assert vp.zoom_by(-1)
    assert vp.zoom < 2 ** 50


def test_ceiling_applied_on_creation_and_resize():
    settings = EngineSettings(zoom_ceiling=1000)
    vp = ViewportState(100, 100, 0, 0, zoom=5000, max_iter=100, settings=settings)
    assert vp.zoom == 1000
    assert not vp.resize(100, 400)
    assert vp.zoom == 1000
    assert (vp.width, vp.height) == (100, 400)


def test_zoom_center_formula_with_negative_pivot():
    vp = ViewportState(100, 100, -101, 37, zoom=200, max_iter=100,
                       settings=EngineSettings(zoom_step=1.5))
    assert vp.zoom_by(1, -7, -3)
    # round((center + pivot) * new / old - pivot)
    assert (vp.center_x, vp.center_y) == (-155, 54)
