import math
from datetime import datetime

import pytest

from sky.timeofday import (
    GROUND_DAY, GROUND_NIGHT, MOON_SIZE, ORBIT_RADIUS, SUN_SIZE, TIME_KEYS,
    current_hour, fill_light_position, get_time_of_day_config, ground_color,
    hex_color, is_night_hour,
)


def test_hex_color():
    assert hex_color(0xFF0000) == (1.0, 0.0, 0.0)
    assert hex_color(0x000000) == (0.0, 0.0, 0.0)


@pytest.mark.parametrize("key", TIME_KEYS[:-1], ids=lambda k: f"h{k[0]}")
def test_keyframe_hours_are_exact(key):
    hour, background, fog, sky_amb, ground_amb, amb_i, sun_color, sun_i = key
    sky = get_time_of_day_config(hour)
    assert sky.background == hex_color(background)
    assert sky.fog == hex_color(fog)
    assert sky.sky_ambient == hex_color(sky_amb)
    assert sky.ground_ambient == hex_color(ground_amb)
    assert sky.ambient_intensity == amb_i
    assert sky.sun_color == hex_color(sun_color)
    assert sky.sun_intensity == sun_i


def test_midpoint_interpolation():
    sky = get_time_of_day_config(11.5)   # halfway between 10:00 and 13:00
    assert sky.ambient_intensity == pytest.approx((0.55 + 0.60) / 2)
    assert sky.sun_intensity == pytest.approx((0.95 + 1.00) / 2)


def test_hour_wraps():
    assert get_time_of_day_config(24.0) == get_time_of_day_config(0.0)
    assert get_time_of_day_config(-1.0).hour == pytest.approx(23.0)
    assert get_time_of_day_config(30.0).hour == pytest.approx(6.0)


@pytest.mark.parametrize("hour,night", [
    (5.99, True), (6.0, False), (19.49, False), (19.5, True), (0.0, True), (12.0, False),
])
def test_day_night_boundary(hour, night):
    assert is_night_hour(hour) is night
    assert get_time_of_day_config(hour).is_night is night


def test_sun_arc():
    sunrise = get_time_of_day_config(6.0).body_position
    assert sunrise[0] == pytest.approx(-ORBIT_RADIUS)
    assert sunrise[2] == pytest.approx(0.0)

    noon = get_time_of_day_config(12.5).body_position
    assert noon[0] == pytest.approx(0.0, abs=1e-9)
    assert noon[2] == pytest.approx(ORBIT_RADIUS * 0.9)
    # Always behind the tree, away from the camera
    assert noon[1] > 0


def test_moon_arc():
    sky = get_time_of_day_config(0.5)    # five hours into the night
    assert sky.body_position[2] == pytest.approx(ORBIT_RADIUS * 0.75)
    assert sky.body_size == MOON_SIZE
    assert get_time_of_day_config(12).body_size == SUN_SIZE


def test_ground_color_tracks_ambient():
    assert ground_color(get_time_of_day_config(0.0)) == pytest.approx(GROUND_NIGHT)
    assert ground_color(get_time_of_day_config(13.0)) == pytest.approx(GROUND_DAY)


def test_fill_light_mirrors_body():
    sky = get_time_of_day_config(9.0)
    x, y, z = fill_light_position(sky)
    assert x == pytest.approx(-sky.body_position[0] * 0.5)
    assert y == pytest.approx(-sky.body_position[1])
    assert z == 2.0


def test_wall_clock_hour():
    assert current_hour(datetime(2024, 3, 1, 21, 30)) == 21.5
    assert 0.0 <= get_time_of_day_config().hour < 24.0
