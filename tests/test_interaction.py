import math

import pytest

from weatherlens.config import PanPolicy
from weatherlens.interaction import InteractionController, apply_wheel, classify_gesture
from weatherlens.models import GestureKind, PointerEvent

ONE_RADIAN_PX = 200.0  # Canvas px per radian at zoom 1


def click(controller, rect, x, y, t=0.0):
    controller.pointer_down(PointerEvent(x, y, t), rect)
    return controller.pointer_up(PointerEvent(x, y, t + 0.05), rect)


def drag(controller, rect, start, end, t=0.0, duration=0.5):
    controller.pointer_down(PointerEvent(*start, t), rect)
    controller.pointer_move(PointerEvent(*end, t + duration / 2), rect)
    return controller.pointer_up(PointerEvent(*end, t + duration), rect)


@pytest.mark.parametrize(
    "dx, dy, elapsed, expected",
    [
        (3.0, 4.0, 0.25, GestureKind.CLICK),  # 5px, 250ms
        (6.0, 8.0, 0.25, GestureKind.DRAG),  # 10px
        (3.0, 4.0, 0.4, GestureKind.DRAG),  # 400ms
        (6.0, 0.0, 0.1, GestureKind.DRAG),  # exactly at the distance bound
        (0.0, 0.0, 0.3, GestureKind.DRAG),  # exactly at the duration bound
    ],
)
def test_classify_gesture(dx, dy, elapsed, expected):
    down = PointerEvent(100.0, 100.0, 0.0)
    up = PointerEvent(100.0 + dx, 100.0 + dy, elapsed)

    assert classify_gesture(down, up) is expected


def test_click_places_pin_under_pointer(canvas_rect):
    controller = InteractionController()

    kind = click(controller, canvas_rect, 400, 300)

    assert kind is GestureKind.CLICK
    assert controller.pin.lat == pytest.approx(0.0)
    assert controller.pin.lon == pytest.approx(0.0)
    assert controller.readout == controller.pin


def test_latest_click_replaces_pin(canvas_rect):
    controller = InteractionController()

    click(controller, canvas_rect, 400, 300)
    click(controller, canvas_rect, 500, 300, t=1.0)

    assert controller.pin.lon == pytest.approx(math.degrees(100 / ONE_RADIAN_PX))
    assert controller.pin.lat == pytest.approx(0.0)


def test_drag_rotates_without_moving_pin(canvas_rect):
    controller = InteractionController()
    click(controller, canvas_rect, 400, 300)
    pin = controller.pin

    kind = drag(controller, canvas_rect, (400, 300), (500, 300), t=1.0)

    assert kind is GestureKind.DRAG
    assert controller.pin == pin
    assert controller.rotation == pytest.approx(math.degrees(100 / ONE_RADIAN_PX))
    # The point grabbed at drag start now sits under the pointer.
    grabbed = controller.projection().forward(pin)
    assert grabbed.x == pytest.approx(500.0)


def test_drag_measures_against_start_projection(canvas_rect):
    controller = InteractionController()
    controller.pointer_down(PointerEvent(400, 300, 0.0), canvas_rect)

    controller.pointer_move(PointerEvent(500, 300, 0.1), canvas_rect)
    first = controller.rotation
    controller.pointer_move(PointerEvent(500, 300, 0.2), canvas_rect)

    assert controller.dragging
    assert controller.rotation == pytest.approx(first)


def test_slow_small_gesture_is_a_drag_and_places_nothing(canvas_rect):
    controller = InteractionController()
    controller.pointer_down(PointerEvent(400, 300, 0.0), canvas_rect)

    kind = controller.pointer_up(PointerEvent(402, 300, 0.5), canvas_rect)

    assert kind is GestureKind.DRAG
    assert controller.pin is None


def test_vertical_drag_pans_and_click_accounts_for_pan(canvas_rect):
    controller = InteractionController()

    drag(controller, canvas_rect, (400, 300), (400, 350))
    assert controller.pan_y == pytest.approx(50.0)
    assert controller.rotation == pytest.approx(0.0)

    click(controller, canvas_rect, 400, 350, t=2.0)
    assert controller.pin.lat == pytest.approx(0.0)

    drag(controller, canvas_rect, (400, 300), (400, 250), t=3.0)
    assert controller.pan_y == pytest.approx(0.0)


def test_pan_is_unbounded_by_default(canvas_rect):
    controller = InteractionController()

    drag(controller, canvas_rect, (400, 300), (400, 1300))

    assert controller.pan_y == pytest.approx(1000.0)


def test_pan_policy_clamps(canvas_rect):
    controller = InteractionController(pan_policy=PanPolicy(limit=200))

    drag(controller, canvas_rect, (400, 300), (400, 1300))
    assert controller.pan_y == pytest.approx(200.0)

    drag(controller, canvas_rect, (400, 300), (400, -2000), t=1.0)
    assert controller.pan_y == pytest.approx(-200.0)


def test_idle_move_updates_readout_and_country_only(canvas_rect):
    seen = []

    def lookup(coord):
        seen.append(coord)
        return "Atlantis"

    controller = InteractionController(country_lookup=lookup)
    controller.pointer_move(PointerEvent(400, 300, 0.0), canvas_rect)

    assert controller.readout.lat == pytest.approx(0.0)
    assert controller.country == "Atlantis"
    assert controller.pin is None
    assert controller.rotation == 0.0
    assert controller.pan_y == 0.0
    assert len(seen) == 1


def test_click_resolves_country(canvas_rect):
    controller = InteractionController(country_lookup=lambda coord: "Nowhere" if coord.lon > 0 else None)

    click(controller, canvas_rect, 500, 300)
    assert controller.country == "Nowhere"

    click(controller, canvas_rect, 300, 300, t=1.0)
    assert controller.country is None


def test_unmounted_container_ignores_click():
    controller = InteractionController()

    kind = click(controller, None, 400, 300)

    assert kind is GestureKind.CLICK
    assert controller.pin is None


def test_pointer_up_without_down_is_ignored(canvas_rect):
    controller = InteractionController()

    assert controller.pointer_up(PointerEvent(400, 300, 0.0), canvas_rect) is None


def test_pointer_cancel_abandons_gesture(canvas_rect):
    controller = InteractionController()
    controller.pointer_down(PointerEvent(400, 300, 0.0), canvas_rect)

    controller.pointer_cancel()

    assert not controller.dragging
    assert controller.pointer_up(PointerEvent(400, 300, 0.05), canvas_rect) is None
    assert controller.pin is None


def test_clear_pin(canvas_rect):
    controller = InteractionController()
    click(controller, canvas_rect, 400, 300)

    controller.clear_pin()

    assert controller.pin is None


def test_zoom_converges_to_bounds():
    controller = InteractionController()

    for _ in range(30):
        controller.wheel(-100)
    assert controller.zoom == 8.0

    for _ in range(30):
        controller.wheel(100)
    assert controller.zoom == 1.0


def test_zoom_stays_in_range_for_any_sequence():
    zoom = 1.0
    for delta in [-1, -1, 1, -1, -1, -1, 1, 1, 1, 1, 1, -1] * 5:
        zoom = apply_wheel(zoom, delta)
        assert 1.0 <= zoom <= 8.0


def test_zoom_step_factors():
    assert apply_wheel(2.0, -1) == pytest.approx(2.4)
    assert apply_wheel(2.0, 1) == pytest.approx(1.6)


def test_view_key_ignores_pin_placement(canvas_rect):
    controller = InteractionController()
    before = controller.view_key

    click(controller, canvas_rect, 500, 300)

    assert controller.view_key == before


def test_view_key_changes_with_rotation_pan_and_zoom(canvas_rect):
    controller = InteractionController()
    seen = {controller.view_key}

    drag(controller, canvas_rect, (400, 300), (520, 300))
    seen.add(controller.view_key)
    drag(controller, canvas_rect, (400, 300), (400, 420), t=1.0)
    seen.add(controller.view_key)
    controller.wheel(-1)
    seen.add(controller.view_key)

    assert len(seen) == 4


def test_same_canvas_click_after_rotation_lands_elsewhere(canvas_rect):
    controller = InteractionController()
    click(controller, canvas_rect, 500, 300)
    first = controller.pin

    drag(controller, canvas_rect, (400, 300), (520, 300), t=1.0)
    click(controller, canvas_rect, 500, 300, t=2.0)

    assert controller.pin != first
    assert controller.projection().forward(controller.pin).x == pytest.approx(500.0)
