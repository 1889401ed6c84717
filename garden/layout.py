"""
Garden & Badge Placement — decorative life around the tree.

Garden foliage grows with totalMinutes in four thresholds
(30 / 120 / 300 / 600 minutes); dayStreak drives foliage colour vibrancy.
Khatm badge stones form a ring, one stone per completed read-through, and
every 5th stone carries a gold accent.

Layouts are plain data from fixed-seed generators: the same engagement
level always gives the same garden.
"""

import math
from dataclasses import dataclass, field
from typing import List, Tuple

from growth.rng import Mulberry32

Vec3 = Tuple[float, float, float]
Color = Tuple[float, float, float]

GARDEN_SEED = 0xC0FFEE
BADGE_SEED = 0xBA06E5

# Minute thresholds for garden levels 1..4
GARDEN_THRESHOLDS = (30, 120, 300, 600)

GRASS_COUNTS = (0, 10, 22, 36, 54)
FLOWER_COUNTS = (0, 0, 6, 12, 20)
SHRUB_COUNTS = (0, 0, 0, 2, 5)

STREAK_CEILING = 30.0

MAX_BADGES = 12
SPECIAL_BADGE_EVERY = 5

FLOWER_PALETTE: Tuple[Color, ...] = (
    (1.0, 0.667, 0.8),     # pink
    (1.0, 0.867, 0.467),   # butter yellow
    (0.533, 0.8, 1.0),     # sky blue
)


@dataclass
class GrassTuft:
    position: Vec3
    blades: List[Tuple[Vec3, Vec3]] = field(default_factory=list)  # (offset, hpr)


@dataclass
class Wildflower:
    position: Vec3
    color: Color


@dataclass
class Shrub:
    position: Vec3
    lobe_offset: Vec3


@dataclass
class GardenLayout:
    level: int
    vibrancy: float = 0.0
    grass: List[GrassTuft] = field(default_factory=list)
    flowers: List[Wildflower] = field(default_factory=list)
    shrubs: List[Shrub] = field(default_factory=list)

    @property
    def grass_color(self) -> Color:
        return (0.08, 0.22 + self.vibrancy * 0.18, 0.04)

    @property
    def shrub_color(self) -> Color:
        return (0.07, 0.18 + self.vibrancy * 0.12, 0.03)


@dataclass
class BadgeStone:
    index: int
    position: Vec3
    heading: float       # degrees, faces along the ring
    lean: float          # degrees, slight weathered tilt
    height: float
    special: bool

    @property
    def color(self) -> Color:
        return (0.55, 0.45, 0.14) if self.special else (0.40, 0.36, 0.30)

    @property
    def emission(self) -> Color:
        return (0.14, 0.09, 0.01) if self.special else (0.02, 0.02, 0.01)


def garden_level(total_minutes: float) -> int:
    level = 0
    for threshold in GARDEN_THRESHOLDS:
        if total_minutes >= threshold:
            level += 1
    return level


def _ring_point(angle: float, radius: float) -> Vec3:
    return (math.cos(angle) * radius, math.sin(angle) * radius, 0.0)


def layout_garden(total_minutes: float, day_streak: float) -> GardenLayout:
    rand = Mulberry32(GARDEN_SEED)
    level = garden_level(total_minutes or 0)
    layout = GardenLayout(level=level,
                          vibrancy=min(1.0, max(0.0, (day_streak or 0) / STREAK_CEILING)))
    if level == 0:
        return layout

    # Grass tufts, three blades each
    for _ in range(GRASS_COUNTS[level]):
        angle = rand() * math.pi * 2
        radius = 0.5 + rand() * 2.8
        tuft = GrassTuft(position=_ring_point(angle, radius))
        for _ in range(3):
            offset = ((rand() - 0.5) * 0.09, (rand() - 0.5) * 0.09, 0.0)
            hpr = (rand() * 360.0, math.degrees((rand() - 0.5) * 0.5), 0.0)
            tuft.blades.append((offset, hpr))
        layout.grass.append(tuft)

    # Wildflowers (level 2+)
    for _ in range(FLOWER_COUNTS[level]):
        angle = rand() * math.pi * 2
        radius = 0.6 + rand() * 2.2
        hue = rand()
        color = FLOWER_PALETTE[0 if hue < 0.33 else 1 if hue < 0.66 else 2]
        layout.flowers.append(Wildflower(position=_ring_point(angle, radius), color=color))

    # Shrubs (level 3+), spread evenly with jitter
    shrub_count = SHRUB_COUNTS[level]
    for i in range(shrub_count):
        angle = (i / shrub_count) * math.pi * 2 + rand() * 0.6
        radius = 1.6 + rand() * 0.8
        lobe = ((rand() - 0.5) * 0.25, (rand() - 0.5) * 0.25, 0.28)
        layout.shrubs.append(Shrub(position=_ring_point(angle, radius), lobe_offset=lobe))

    return layout


def layout_badges(khatms: float) -> List[BadgeStone]:
    rand = Mulberry32(BADGE_SEED)
    count = min(max(0, int(khatms or 0)), MAX_BADGES)
    stones = []
    for i in range(count):
        angle = (i / count) * math.pi * 2
        radius = 1.9 + (i % 2) * 0.3
        height = 0.15 + (i % 3) * 0.07
        x, y, _ = _ring_point(angle, radius)
        stones.append(BadgeStone(
            index=i,
            position=(x, y, height / 2),
            heading=math.degrees(angle) + 90.0,
            lean=math.degrees((rand() - 0.5) * 0.12),
            height=height,
            special=i % SPECIAL_BADGE_EVERY == 0,
        ))
    return stones
