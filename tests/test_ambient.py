import math

import pytest

from scene.ambient import (
    DEFAULT_FRAMING, CameraFraming, camera_orbit, firefly_blink,
    firefly_position, frame_bounds, make_fireflies, make_star_field,
    star_color, star_twinkle, tree_sway,
)


class TestFraming:

    def test_tall_tree(self):
        framing = frame_bounds(((-1.0, -1.0, 0.0), (1.0, 1.0, 3.0)))
        assert framing.dist == pytest.approx(4.8)
        assert framing.cam_height == pytest.approx(1.5 + 0.3)
        assert framing.look_height == pytest.approx(1.2)

    def test_small_tree_keeps_minimum_distance(self):
        framing = frame_bounds(((-0.1, -0.1, 0.0), (0.1, 0.1, 0.4)))
        assert framing.dist == 2.5

    def test_missing_bounds(self):
        with pytest.raises(ValueError):
            frame_bounds(None)

    def test_degenerate_bounds(self):
        with pytest.raises(ValueError):
            frame_bounds(((0.0, 0.0, 0.0), (0.0, 0.0, 0.0)))
        with pytest.raises(ValueError):
            frame_bounds(((0.0, 0.0, 0.0), (1.0, float("nan"), 1.0)))

    def test_default_pose(self):
        assert DEFAULT_FRAMING == CameraFraming(dist=5.0, cam_height=2.0, look_height=1.0)

    def test_orbit(self):
        framing = CameraFraming(dist=4.0, cam_height=1.5, look_height=1.0)
        pos, look = camera_orbit(0.0, framing)
        assert pos == pytest.approx((0.0, -4.0, 1.5))
        assert look == (0.0, 0.0, 1.0)
        pos, _ = camera_orbit(10.0, framing)
        assert math.hypot(pos[0], pos[1]) == pytest.approx(4.0)


class TestNightLife:

    def test_star_field(self):
        field = make_star_field(160)
        assert len(field.positions) == len(field.phases) == 160
        for x, y, z in field.positions:
            assert 16.0 - 1e-9 <= math.sqrt(x * x + y * y + z * z) <= 19.0 + 1e-9
            assert z > 0
        assert make_star_field(160) == field

    def test_twinkle_range(self):
        for i in range(200):
            assert 0.4 - 1e-12 <= star_twinkle(i * 0.37, i * 0.11) <= 1.0 + 1e-12
        r, g, b = star_color(0.96)
        assert r == g == 0.96
        assert b == 1.0

    def test_fireflies(self):
        flies = make_fireflies(20)
        assert len(flies) == 20
        for fly in flies:
            assert 0.5 - 1e-9 <= math.hypot(fly.base[0], fly.base[1]) <= 2.5 + 1e-9
            assert 0.2 <= fly.base[2] <= 3.7
            assert 0.3 <= fly.speed <= 1.0
            assert fly.phase_y == pytest.approx(fly.phase_x + 1.1)

    def test_firefly_drift_is_bounded(self):
        fly = make_fireflies(1)[0]
        for step in range(100):
            x, y, z = firefly_position(fly, step * 0.3)
            assert abs(x - fly.base[0]) <= 0.45 + 1e-9
            assert abs(y - fly.base[1]) <= 0.45 + 1e-9
            assert abs(z - fly.base[2]) <= 0.28 + 1e-9

    def test_blink_is_rectified(self):
        fly = make_fireflies(1)[0]
        blinks = [firefly_blink(fly, step * 0.1) for step in range(200)]
        assert min(blinks) == 0.0
        assert max(blinks) <= 1.0
        assert max(blinks) > 0.5


def test_tree_sway_is_gentle():
    for step in range(100):
        roll, pitch = tree_sway(step * 0.5)
        assert abs(roll) <= math.degrees(0.01) + 1e-12
        assert abs(pitch) <= math.degrees(0.005) + 1e-12
