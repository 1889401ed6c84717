from .layout import (
    GardenLayout, GrassTuft, Wildflower, Shrub, BadgeStone,
    garden_level, layout_garden, layout_badges, MAX_BADGES,
)
