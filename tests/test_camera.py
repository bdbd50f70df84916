import logging
import math

import numpy as np
import pytest

from posing.camera import OrbitCameraController, Spherical, ease_in_out_quad
from posing.settings import CameraSettings


@pytest.fixture
def camera():
    return OrbitCameraController(CameraSettings(), 1200, 800)


def run(camera, seconds, dt=1 / 60):
    for _ in range(int(math.ceil(seconds / dt)) + 1):
        camera.step(dt)
        camera.update()


def test_initial_state(camera):
    assert camera.spherical.radius == pytest.approx(math.sqrt(75))
    np.testing.assert_allclose(camera.update(), [5, 5, 5], atol=1e-9)


def test_spherical_convention():
    s = Spherical.from_cartesian((0, 0, 8))
    assert (s.radius, s.phi, s.theta) == pytest.approx((8, math.pi / 2, 0))
    s = Spherical.from_cartesian((8, 0, 0))
    assert s.theta == pytest.approx(math.pi / 2)
    np.testing.assert_allclose(Spherical(2.0, math.pi / 2, math.pi / 2).to_cartesian(), [2, 0, 0], atol=1e-12)


@pytest.mark.parametrize('delta', [100.0, -100.0, 3.0, -3.0])
def test_polar_angle_clamped(camera, delta):
    camera.state.spherical_delta.phi = delta
    camera.update()
    assert 0.1 <= camera.spherical.phi <= math.pi - 0.1


def test_radius_clamped(camera):
    for _ in range(200):
        camera.on_wheel(1)
    camera.update()
    assert camera.spherical.radius == pytest.approx(50.0)

    for _ in range(400):
        camera.on_wheel(-1)
    camera.update()
    assert camera.spherical.radius == pytest.approx(2.0)


def test_wheel_direction(camera):
    camera.on_wheel(120)
    assert camera.state.scale == pytest.approx(1.05)
    assert camera.state.zoom_changed
    camera.update()
    assert camera.state.scale == 1.0
    assert not camera.state.zoom_changed

    camera.on_wheel(-120)
    assert camera.state.scale == pytest.approx(0.95)


def test_left_drag_rotates(camera):
    camera.on_pointer_down(100, 100, 'left')
    camera.on_pointer_move(110, 105)
    k = 0.8 * math.pi / 800
    assert camera.state.spherical_delta.theta == pytest.approx(-10 * k)
    assert camera.state.spherical_delta.phi == pytest.approx(-5 * k)

    camera.on_pointer_up(110, 105, 'left')
    camera.on_pointer_move(200, 200)
    assert camera.state.spherical_delta.theta == pytest.approx(-10 * k)


def test_right_drag_pans_along_screen_axes(camera):
    right, up, _ = camera.camera_basis()
    camera.on_pointer_down(0, 0, 'right')
    camera.on_pointer_move(10, 0)
    assert np.dot(camera.state.pan_offset, right) < 0
    assert np.dot(camera.state.pan_offset, up) == pytest.approx(0.0, abs=1e-12)

    camera.update()
    assert np.dot(camera.target, right) < 0


def test_damping(camera):
    camera.state.spherical_delta.theta = 0.1
    camera.update()
    assert camera.state.spherical_delta.theta == pytest.approx(0.1 * 0.95)

    camera.state.enable_damping = False
    camera.update()
    assert camera.state.spherical_delta.theta == 0.0


def test_disabled_camera_ignores_input(camera):
    camera.on_pointer_down(0, 0, 'left')
    camera.enabled = False
    camera.on_pointer_move(50, 50)
    camera.on_wheel(1)
    camera.on_pointer_down(0, 0, 'left')
    camera.on_pointer_move(80, 80)
    assert camera.state.spherical_delta.theta == 0.0
    assert camera.state.scale == 1.0
    np.testing.assert_allclose(camera.update(), [5, 5, 5], atol=1e-9)


def test_front_preset_transition(camera):
    assert camera.set_preset_view('front')
    assert camera.animating
    run(camera, 1.0)
    assert not camera.animating
    np.testing.assert_allclose(camera.position, [0, 0, 8], atol=1e-9)
    np.testing.assert_allclose(camera.target, [0, 0, 0], atol=1e-12)


def test_preset_after_flick_lands_exactly(camera):
    camera.rotate(-50, 0)
    camera.pan(20, 10)
    camera.on_wheel(1)
    camera.update()
    assert camera.set_preset_view('front')
    run(camera, 1.0)
    np.testing.assert_allclose(camera.position, [0, 0, 8], atol=1e-9)
    np.testing.assert_allclose(camera.target, [0, 0, 0], atol=1e-12)

    # 动画结束后不再漂移
    for _ in range(30):
        camera.update()
    np.testing.assert_allclose(camera.position, [0, 0, 8], atol=1e-9)


def test_transition_midpoint(camera):
    camera.animate_to((0, 0, 8), duration=1.0)
    camera.step(0.5)
    np.testing.assert_allclose(camera.position, [2.5, 2.5, 6.5], atol=1e-9)


def test_second_transition_ignored(camera):
    assert camera.set_preset_view('front')
    camera.step(0.1)
    assert camera.set_preset_view('right') is False
    run(camera, 1.0)
    np.testing.assert_allclose(camera.position, [0, 0, 8], atol=1e-9)


def test_new_transition_after_completion(camera):
    camera.set_preset_view('front')
    run(camera, 1.0)
    assert camera.set_preset_view('left')
    run(camera, 1.0)
    np.testing.assert_allclose(camera.position, [-8, 0, 0], atol=1e-9)


def test_easing_curve():
    assert ease_in_out_quad(0.0) == 0.0
    assert ease_in_out_quad(0.25) == pytest.approx(0.125)
    assert ease_in_out_quad(0.5) == pytest.approx(0.5)
    assert ease_in_out_quad(0.75) == pytest.approx(0.875)
    assert ease_in_out_quad(1.0) == pytest.approx(1.0)


def test_unknown_preset(camera, caplog):
    with caplog.at_level(logging.WARNING):
        assert camera.set_preset_view('diagonal') is False
    assert 'diagonal' in caplog.text
    assert not camera.animating


def test_reset_and_distance(camera):
    camera.set_preset_view('back', animate=False)
    np.testing.assert_allclose(camera.position, [0, 0, -8], atol=1e-9)
    camera.reset()
    np.testing.assert_allclose(camera.position, [5, 5, 5], atol=1e-9)

    camera.set_distance(100)
    assert camera.spherical.radius == 50.0
    camera.set_distance(0.5)
    assert camera.spherical.radius == 2.0


def test_center_ray_points_at_target(camera):
    ray = camera.ray_from_pointer(600, 400)
    expected = -np.array([5.0, 5.0, 5.0]) / math.sqrt(75)
    np.testing.assert_allclose(ray.direction, expected, atol=1e-12)
    assert camera.project((0, 0, 0)) == pytest.approx((600, 400))


def test_ray_and_projection_agree(camera):
    camera.resize(1000, 500)
    point = np.array([0.7, -0.4, 1.1])
    x, y = camera.project(point)
    ray = camera.ray_from_pointer(x, y)
    to_point = point - ray.origin
    np.testing.assert_allclose(ray.direction, to_point / np.linalg.norm(to_point), atol=1e-9)


def test_zoom_level_follows_distance(camera):
    camera.set_preset_view('front', animate=False)
    assert camera.zoom_level == round(100 / 8)
    camera.on_wheel(-1)
    camera.update()
    assert camera.zoom_level == round(100 / (8 * 0.95))

    camera.set_zoom_level(25)
    assert camera.spherical.radius == pytest.approx(4.0)
    assert camera.zoom_level == 25
