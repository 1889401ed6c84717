"""
Ambient life — stars, fireflies, tree sway and the orbiting camera.

Pure per-frame math, kept apart from the scene graph so the SceneComposer
only has to write the results into nodes.
"""

import math
from dataclasses import dataclass
from typing import List, Tuple

from growth.rng import Mulberry32

Vec3 = Tuple[float, float, float]

STAR_SEED = 0x57A125
FIREFLY_SEED = 0xF1AEF1


@dataclass
class StarField:
    positions: List[Vec3]
    phases: List[float]


@dataclass
class Firefly:
    base: Vec3
    phase_x: float
    phase_y: float
    phase_z: float
    speed: float
    blink_phase: float


@dataclass
class CameraFraming:
    dist: float
    cam_height: float
    look_height: float


DEFAULT_FRAMING = CameraFraming(dist=5.0, cam_height=2.0, look_height=1.0)


def make_star_field(count: int = 160, seed: int = STAR_SEED) -> StarField:
    """Stars scattered over the upper dome, away from the horizon band."""
    rand = Mulberry32(seed)
    positions, phases = [], []
    for _ in range(count):
        theta = rand() * math.pi * 2
        phi = math.acos(1 - rand() * 0.92)
        r = 16 + rand() * 3
        positions.append((r * math.sin(phi) * math.cos(theta),
                          r * math.sin(phi) * math.sin(theta),
                          r * math.cos(phi)))
        phases.append(rand() * math.pi * 2)
    return StarField(positions=positions, phases=phases)


def make_fireflies(count: int = 20, seed: int = FIREFLY_SEED) -> List[Firefly]:
    rand = Mulberry32(seed)
    flies = []
    for _ in range(count):
        angle = rand() * math.pi * 2
        radius = 0.5 + rand() * 2.0
        height = 0.2 + rand() * 3.5
        phase = rand() * math.pi * 2
        flies.append(Firefly(
            base=(math.cos(angle) * radius, math.sin(angle) * radius, height),
            phase_x=phase,
            phase_y=phase + 1.1,
            phase_z=phase + 2.3,
            speed=0.3 + rand() * 0.7,
            blink_phase=rand() * math.pi * 2,
        ))
    return flies


def star_twinkle(phase: float, t: float) -> float:
    return 0.4 + 0.6 * (0.5 + 0.5 * math.sin(t * 0.9 + phase))


def star_color(brightness: float) -> Vec3:
    return (brightness, brightness, min(1.0, brightness + 0.08))


def firefly_position(fly: Firefly, t: float) -> Vec3:
    bx, by, bz = fly.base
    return (bx + math.sin(t * fly.speed + fly.phase_x) * 0.45,
            by + math.sin(t * fly.speed * 0.4 + fly.phase_z) * 0.45,
            bz + math.sin(t * fly.speed * 0.6 + fly.phase_y) * 0.28)


def firefly_blink(fly: Firefly, t: float) -> float:
    """Rectified sinusoid: dark for half of each cycle."""
    return max(0.0, math.sin(t * 1.8 * fly.speed + fly.blink_phase))


def tree_sway(t: float) -> Tuple[float, float]:
    """(roll, pitch) in degrees from two slow sinusoids."""
    return (math.degrees(math.sin(t) * 0.01),
            math.degrees(math.cos(t * 0.7) * 0.005))


def camera_orbit(t: float, framing: CameraFraming) -> Tuple[Vec3, Vec3]:
    """Camera position and look-at point for a slow orbit around the tree."""
    angle = t * 0.08
    d = framing.dist
    return ((math.sin(angle) * d, -math.cos(angle) * d, framing.cam_height),
            (0.0, 0.0, framing.look_height))


def frame_bounds(bounds) -> CameraFraming:
    """
    Camera framing for a tree's tight bounds (min_point, max_point).

    Raises ValueError for missing or degenerate bounds.
    """
    if bounds is None:
        raise ValueError("tree has no geometry to frame")
    lo, hi = bounds
    size = [hi[i] - lo[i] for i in range(3)]
    center_z = (hi[2] + lo[2]) / 2
    if not all(math.isfinite(v) for v in size + [center_z]) or max(size) <= 0:
        raise ValueError(f"degenerate tree bounds {size}")

    max_dim = max(size)
    return CameraFraming(
        dist=max(2.5, max_dim * 1.6),
        cam_height=center_z + size[2] * 0.1,
        look_height=center_z * 0.8,
    )
