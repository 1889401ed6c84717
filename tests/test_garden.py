import math

import pytest

from garden.layout import (
    FLOWER_PALETTE, MAX_BADGES, garden_level, layout_badges, layout_garden,
)


@pytest.mark.parametrize("minutes,level", [
    (0, 0), (29, 0), (30, 1), (119, 1), (120, 2), (300, 3), (599, 3), (600, 4), (10000, 4),
])
def test_garden_level(minutes, level):
    assert garden_level(minutes) == level


@pytest.mark.parametrize("minutes,grass,flowers,shrubs", [
    (0, 0, 0, 0),
    (45, 10, 0, 0),
    (150, 22, 6, 0),
    (400, 36, 12, 2),
    (900, 54, 20, 5),
])
def test_garden_counts(minutes, grass, flowers, shrubs):
    layout = layout_garden(minutes, 5)
    assert len(layout.grass) == grass
    assert len(layout.flowers) == flowers
    assert len(layout.shrubs) == shrubs
    assert all(len(tuft.blades) == 3 for tuft in layout.grass)


def test_garden_is_deterministic():
    a = layout_garden(700, 12)
    b = layout_garden(700, 12)
    assert a == b


def test_garden_stays_in_its_ring():
    layout = layout_garden(900, 30)
    for tuft in layout.grass:
        r = math.hypot(*tuft.position[:2])
        assert 0.5 - 1e-9 <= r <= 3.3 + 1e-9
    for flower in layout.flowers:
        assert 0.6 - 1e-9 <= math.hypot(*flower.position[:2]) <= 2.8 + 1e-9
        assert flower.color in FLOWER_PALETTE
    for shrub in layout.shrubs:
        assert 1.6 - 1e-9 <= math.hypot(*shrub.position[:2]) <= 2.4 + 1e-9


def test_streak_drives_vibrancy():
    assert layout_garden(100, 0).vibrancy == 0.0
    assert layout_garden(100, 15).vibrancy == pytest.approx(0.5)
    assert layout_garden(100, 300).vibrancy == 1.0
    dull, lush = layout_garden(100, 0), layout_garden(100, 30)
    assert lush.grass_color[1] > dull.grass_color[1]


def test_badges_one_per_khatm():
    assert layout_badges(0) == []
    stones = layout_badges(7)
    assert [s.index for s in stones] == list(range(7))


def test_badges_are_capped():
    assert len(layout_badges(40)) == MAX_BADGES


def test_every_fifth_badge_is_special():
    stones = layout_badges(12)
    assert [s.index for s in stones if s.special] == [0, 5, 10]
    assert stones[0].color != stones[1].color


def test_badges_stand_on_the_ground():
    for stone in layout_badges(9):
        assert stone.position[2] == pytest.approx(stone.height / 2)
        assert 1.9 - 1e-9 <= math.hypot(*stone.position[:2]) <= 2.2 + 1e-9
