from .timeofday import (
    SkyConfig, TIME_KEYS, get_time_of_day_config, is_night_hour,
    celestial_position, ground_color, fill_light_position, hex_color,
)
