"""
Sky/Time Model — keyframed environment lighting by hour of day.

A fixed table of keyframes (hour → colours and intensities) is linearly
interpolated at the requested hour. The sun travels a semicircular arc
across the day window (06:00 → 19:00) and the moon across the night window
(19:30 → 05:30), each on its own arc height.

Night: hour < 6.0 or hour >= 19.5.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

Color = Tuple[float, float, float]
Vec3 = Tuple[float, float, float]


def hex_color(value: int) -> Color:
    return (((value >> 16) & 0xFF) / 255.0,
            ((value >> 8) & 0xFF) / 255.0,
            (value & 0xFF) / 255.0)


# hour, background, fog/horizon, sky ambient, ground ambient,
# ambient intensity, sun colour, sun intensity
TIME_KEYS = [
    (0,  0x060C1A, 0x12182E, 0x1A2245, 0x0A0E18, 0.12, 0xC8D8FF, 0.08),
    (5,  0x1C0E32, 0x3A1545, 0x251540, 0x120A20, 0.18, 0xFFBB88, 0.14),
    (6,  0x3D1F60, 0xE07850, 0x4A2850, 0x2A1010, 0.28, 0xFFCC80, 0.52),
    (7,  0x4E8ECC, 0xE8CC90, 0xC0B890, 0x3D2B1F, 0.45, 0xFFF0C0, 0.82),
    (10, 0x2278CC, 0x98DAF5, 0xA8CCEE, 0x3D2B1F, 0.55, 0xFFFFF5, 0.95),
    (13, 0x1870C8, 0x88D0F0, 0xA0C8E8, 0x3D2B1F, 0.60, 0xFFFFFF, 1.00),
    (17, 0x2A68B8, 0xA0C8E8, 0xA8C8E0, 0x3D2B1F, 0.55, 0xFFF8D0, 0.85),
    (19, 0x2A1858, 0xE07040, 0x4A2840, 0x1A0808, 0.30, 0xFF9940, 0.50),
    (20, 0x100C28, 0x1C1438, 0x181630, 0x080610, 0.16, 0xFFD880, 0.16),
    (24, 0x060C1A, 0x12182E, 0x1A2245, 0x0A0E18, 0.12, 0xC8D8FF, 0.08),
]

DAY_START = 6.0
NIGHT_START = 19.5
DAY_ARC_HOURS = 13.0      # 06:00 → 19:00
NIGHT_ARC_HOURS = 10.0    # 19:30 → 05:30

ORBIT_RADIUS = 11.0
DAY_ARC_HEIGHT = 0.9
NIGHT_ARC_HEIGHT = 0.75
BODY_DEPTH = 1.5          # behind the tree, away from the camera

SUN_SIZE = 0.48
MOON_SIZE = 0.28
SUN_COLOR = hex_color(0xFFFFC0)
MOON_COLOR = hex_color(0xFFF8F0)

GROUND_NIGHT = hex_color(0x0A1408)
GROUND_DAY = hex_color(0x2A5A14)
AMBIENT_NIGHT = 0.12
AMBIENT_DAY = 0.56


@dataclass(frozen=True)
class SkyConfig:
    hour: float
    background: Color
    fog: Color
    sky_ambient: Color
    ground_ambient: Color
    ambient_intensity: float
    sun_color: Color
    sun_intensity: float
    body_position: Vec3
    is_night: bool

    @property
    def body_size(self) -> float:
        return MOON_SIZE if self.is_night else SUN_SIZE

    @property
    def body_color(self) -> Color:
        return MOON_COLOR if self.is_night else SUN_COLOR


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def _lerp_color(a: int, b: int, t: float) -> Color:
    ca, cb = hex_color(a), hex_color(b)
    return (_lerp(ca[0], cb[0], t), _lerp(ca[1], cb[1], t), _lerp(ca[2], cb[2], t))


def current_hour(now: Optional[datetime] = None) -> float:
    now = now or datetime.now()
    return now.hour + now.minute / 60.0


def is_night_hour(hour: float) -> bool:
    return hour < DAY_START or hour >= NIGHT_START


def celestial_position(hour: float) -> Vec3:
    """Sun or moon position on its semicircular arc."""
    if not is_night_hour(hour):
        progress = (hour - DAY_START) / DAY_ARC_HOURS
        height = DAY_ARC_HEIGHT
    else:
        hours_into_night = hour - NIGHT_START if hour >= NIGHT_START else hour + (24.0 - NIGHT_START)
        progress = hours_into_night / NIGHT_ARC_HOURS
        height = NIGHT_ARC_HEIGHT
    angle = max(0.0, min(1.0, progress)) * math.pi
    return (-math.cos(angle) * ORBIT_RADIUS,
            BODY_DEPTH,
            math.sin(angle) * ORBIT_RADIUS * height)


def _bracket(hour: float):
    a, b = TIME_KEYS[0], TIME_KEYS[1]
    for i in range(len(TIME_KEYS) - 1):
        if TIME_KEYS[i][0] <= hour < TIME_KEYS[i + 1][0]:
            return TIME_KEYS[i], TIME_KEYS[i + 1]
    return a, b


def get_time_of_day_config(hour: Optional[float] = None) -> SkyConfig:
    """
    Environment descriptor for an hour in [0, 24).

    Args:
        hour: Explicit override (taken mod 24), or None for the wall clock.
    """
    hour = current_hour() if hour is None else float(hour) % 24.0

    a, b = _bracket(hour)
    t = 0.0 if b[0] == a[0] else (hour - a[0]) / (b[0] - a[0])

    return SkyConfig(
        hour=hour,
        background=_lerp_color(a[1], b[1], t),
        fog=_lerp_color(a[2], b[2], t),
        sky_ambient=_lerp_color(a[3], b[3], t),
        ground_ambient=_lerp_color(a[4], b[4], t),
        ambient_intensity=_lerp(a[5], b[5], t),
        sun_color=_lerp_color(a[6], b[6], t),
        sun_intensity=_lerp(a[7], b[7], t),
        body_position=celestial_position(hour),
        is_night=is_night_hour(hour),
    )


def ground_color(sky: SkyConfig) -> Color:
    """Ground tint: night green → day green by ambient brightness."""
    span = AMBIENT_DAY - AMBIENT_NIGHT
    t = max(0.0, min(1.0, (sky.ambient_intensity - AMBIENT_NIGHT) / span))
    return tuple(n + (d - n) * t for n, d in zip(GROUND_NIGHT, GROUND_DAY))


def fill_light_position(sky: SkyConfig) -> Vec3:
    """Subtle fill light from the side opposite the celestial body."""
    x, y, _ = sky.body_position
    return (-x * 0.5, -y, 2.0)
