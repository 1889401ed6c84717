from .composer import SceneComposer, SceneConfig, FrameLoop
from .ambient import (
    CameraFraming, DEFAULT_FRAMING, Firefly, StarField,
    camera_orbit, frame_bounds, make_fireflies, make_star_field, tree_sway,
)
