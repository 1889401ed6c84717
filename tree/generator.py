"""
Branch Generator — procedural Sidr tree skeleton.

Algorithm: queue-based branching (FIFO work queue, not recursion) with
tapered cylindrical sections, gnarliness (organic perturbation scaled by
branch level), slow twist, and an upward growth bias for non-trunk
branches. The fractional part of the continuous `levels` parameter decides
probabilistically how many children the last partial generation spawns, so
the branch count grows smoothly with `growth`.

Output is a plain-data TreeSkeleton; rendering.models.build_tree turns it
into Panda3D geometry. Terminal tips are coordinate records, never node
handles, so nothing dangles after a rebuild.

Coordinate system (Panda3D): X = right, Y = forward, Z = up.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

import numpy as np

from growth.params import SCALAR_FIELDS, GrowthParameters
from growth.rng import Mulberry32
from .quat import (
    Quat, Vec3, UP,
    quat_from_axis_angle, quat_from_euler_xyz, quat_from_unit_vectors,
    quat_multiply, quat_normalize, quat_rotate,
    vec_add, vec_cross, vec_length, vec_lerp, vec_normalize, vec_scale,
)

logger = logging.getLogger("sidr_tree")


# Below this growth the tree is still an embryo in the soil
SEED_GROWTH_THRESHOLD = 0.01

# Hard cap against runaway parameter combinations
MAX_ITERATIONS = 2000

# Dead-branch thresholds
MIN_BRANCH_LENGTH = 0.03
MIN_BRANCH_RADIUS = 0.003

# Radial segments per tube ring
RING_SEGMENTS = 6

# Sections per unit of branch length
SECTIONS_PER_UNIT = 5
MIN_SECTIONS = 3
MAX_SECTIONS = 200

# Leaves per cluster, whatever the density
MAX_CLUSTER_LEAVES = 40

# Upward correction for drooping branches
UPWARD_BIAS = 0.015
MIN_UP_COMPONENT = 0.3

# Fruit placement uses its own stream so it stays put as the tree grows
FRUIT_SEED = 42
DEFAULT_SHAPE_SEED = 42

# Memorization size reference (verses in a typical surah)
BLOSSOM_REFERENCE_VERSES = 20


@dataclass
class Section:
    """One ring along a branch path."""
    center: Vec3
    orientation: Quat
    radius: float


@dataclass
class BranchSegment:
    level: int
    origin: Vec3
    direction: Vec3
    length: float
    radius: float
    sections: List[Section] = field(default_factory=list)

    @property
    def tip(self) -> Vec3:
        return self.sections[-1].center

    @property
    def tip_orientation(self) -> Quat:
        return self.sections[-1].orientation


@dataclass
class Decoration:
    """Leaf, bloom, blossom or fruit instance."""
    kind: str
    position: Vec3
    scale: Vec3
    hpr: Vec3 = (0.0, 0.0, 0.0)


@dataclass
class FruitPlacement:
    surah_id: int
    status: str
    progress: int
    tip_index: int
    decoration: Decoration


@dataclass
class TreeSkeleton:
    growth: float
    is_seed: bool = False
    segments: List[BranchSegment] = field(default_factory=list)
    leaves: List[Decoration] = field(default_factory=list)
    blooms: List[Decoration] = field(default_factory=list)
    terminal_tips: List[Vec3] = field(default_factory=list)
    fruits: List[FruitPlacement] = field(default_factory=list)
    iterations: int = 0
    truncated: bool = False

    def segment_transforms(self) -> List[Tuple[Vec3, Quat, float]]:
        """Flat (position, orientation, radius) sequence of every section."""
        return [
            (s.center, s.orientation, s.radius)
            for seg in self.segments
            for s in seg.sections
        ]


@dataclass
class _QueuedBranch:
    origin: Vec3
    direction: Vec3
    length: float
    radius: float
    level: int


# =========================================================
# BRANCH PATH
# =========================================================

def build_branch_path(origin: Vec3, direction: Vec3, length: float,
                      radius: float, level: int, params: GrowthParameters,
                      rand: Mulberry32) -> BranchSegment:
    """Walk a gnarled, tapering path from origin along direction."""
    sections = max(MIN_SECTIONS,
                   min(MAX_SECTIONS, int(math.ceil(length * SECTIONS_PER_UNIT))))
    step_len = length / sections

    orientation = quat_from_unit_vectors(UP, vec_normalize(direction))
    center = origin

    # Trunk stays very straight; branches get more organic
    is_trunk = level == 0
    gnarl_scale = 0.15 if is_trunk else min(2.5, 1 + level * 0.5)
    upward_bias = 0.0 if is_trunk else UPWARD_BIAS
    gnarl = params.gnarliness * gnarl_scale

    segment = BranchSegment(level=level, origin=origin, direction=direction,
                            length=length, radius=radius)

    for s in range(sections + 1):
        t = s / sections
        r = radius * (1 - t * params.taper)

        if s > 0:
            perturb = quat_from_euler_xyz(
                (rand() - 0.5) * gnarl,
                (rand() - 0.5) * gnarl,
                (rand() - 0.5) * params.twist * 0.05,
            )
            orientation = quat_normalize(quat_multiply(orientation, perturb))

            if upward_bias > 0:
                current = quat_rotate(orientation, UP)
                if current[2] < MIN_UP_COMPONENT:
                    axis = vec_cross(current, UP)
                    n = vec_length(axis)
                    if n > 1e-9:
                        nudge = quat_from_axis_angle(vec_scale(axis, 1.0 / n), upward_bias)
                        orientation = quat_normalize(quat_multiply(nudge, orientation))

            center = vec_add(center, quat_rotate(orientation, (0.0, 0.0, step_len)))

        segment.sections.append(Section(center=center, orientation=orientation, radius=r))

    return segment


def tube_arrays(segment: BranchSegment, ring_segments: int = RING_SEGMENTS
                ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Vertex positions, normals and triangle indices of a branch tube.

    Returns (positions[N,3], normals[N,3], triangles[M,3]).
    """
    stride = ring_segments + 1
    n_sections = len(segment.sections)
    positions = np.zeros((n_sections * stride, 3), dtype=np.float32)
    normals = np.zeros_like(positions)

    angles = np.linspace(0.0, 2 * np.pi, stride)
    ring = np.stack([np.cos(angles), np.sin(angles), np.zeros_like(angles)], axis=1)

    vi = 0
    for section in segment.sections:
        for local in ring:
            offset = quat_rotate(section.orientation, (float(local[0]), float(local[1]), 0.0))
            positions[vi] = vec_add(section.center, vec_scale(offset, section.radius))
            normals[vi] = offset
            vi += 1

    triangles = []
    for s in range(n_sections - 1):
        for seg in range(ring_segments):
            a = s * stride + seg
            b = a + stride
            c = a + 1
            d = b + 1
            triangles.append((a, c, b))
            triangles.append((c, d, b))

    return positions, normals, np.array(triangles, dtype=np.int32).reshape(-1, 3)


# =========================================================
# FOLIAGE
# =========================================================

def _js_round(x: float) -> int:
    return int(math.floor(x + 0.5))


def add_leaf_cluster(skeleton: TreeSkeleton, tip: Vec3, params: GrowthParameters,
                     rand: Mulberry32):
    """Scatter flattened leaves around a tip, plus an occasional bloom."""
    if params.leaf_density <= 0:
        return

    count = min(MAX_CLUSTER_LEAVES, max(1, _js_round(params.leaf_density * 5)))
    spread = params.leaf_size * 2

    for _ in range(count):
        s = params.leaf_size * (0.5 + rand() * 0.7)
        position = (tip[0] + (rand() - 0.5) * spread,
                    tip[1] + (rand() - 0.5) * spread,
                    tip[2] + (rand() - 0.2) * spread * 0.5)
        hpr = (rand() * 360.0, rand() * 54.0, rand() * 54.0)
        skeleton.leaves.append(Decoration("leaf", position, (s, s, s * 0.45), hpr))

    if params.has_bloom and rand() < params.bloom_intensity * 0.5:
        bs = params.leaf_size * 0.45
        position = (tip[0] + (rand() - 0.5) * spread * 0.3,
                    tip[1] + (rand() - 0.5) * spread * 0.3,
                    tip[2] + rand() * spread * 0.3)
        skeleton.blooms.append(Decoration("bloom", position, (bs, bs, bs)))


def place_fruits(skeleton: TreeSkeleton, params: GrowthParameters):
    """One blossom or fruit per memorization entry, at a terminal tip."""
    tips = skeleton.terminal_tips
    if not params.fruits or not tips:
        return

    rand = Mulberry32(FRUIT_SEED)
    g = params.growth

    for fruit in params.fruits:
        tip_index = int(math.floor(rand() * len(tips)))
        tip = tips[tip_index]

        if fruit.is_complete:
            s = 0.07 + g * 0.05
            position = (tip[0] + (rand() - 0.5) * 0.15,
                        tip[1] + (rand() - 0.5) * 0.15,
                        tip[2] + rand() * 0.1)
            decoration = Decoration("fruit", position, (s, s, s * 1.2))
        else:
            progress_scale = min(1.0, fruit.progress / BLOSSOM_REFERENCE_VERSES)
            s = (0.03 + progress_scale * 0.06) * (0.5 + g)
            position = (tip[0] + (rand() - 0.5) * 0.1,
                        tip[1] + (rand() - 0.5) * 0.1,
                        tip[2] + rand() * 0.08)
            decoration = Decoration("blossom", position, (s, s, s))

        skeleton.fruits.append(FruitPlacement(
            surah_id=fruit.surah_id,
            status=fruit.status,
            progress=fruit.progress,
            tip_index=tip_index,
            decoration=decoration,
        ))


# =========================================================
# MAIN GENERATOR
# =========================================================

def _finite_params(params: GrowthParameters) -> GrowthParameters:
    """Replace NaN/Infinity fields with the slider values for the same growth."""
    bad = [name for name in SCALAR_FIELDS
           if name not in ("has_bloom", "seed") and not math.isfinite(getattr(params, name))]
    if not bad:
        return params
    fallback = GrowthParameters.from_growth(params.growth)
    logger.warning(
        f"Non-finite growth parameters {bad}; "
        f"using slider values for growth {fallback.growth:.2f}")
    return replace(params, **{name: getattr(fallback, name) for name in bad})


def _child_count(params: GrowthParameters, is_partial: bool, fractional: float,
                 rand: Mulberry32) -> int:
    if not is_partial:
        return max(0, min(MAX_ITERATIONS, _js_round(params.children_per_node)))
    expected = params.children_per_node * fractional
    count = int(math.floor(expected))
    if rand() < expected % 1:
        count += 1
    return max(0, min(MAX_ITERATIONS, count))


def generate_tree(params: GrowthParameters, rand: Optional[Mulberry32] = None
                  ) -> TreeSkeleton:
    """
    Expand growth parameters into a tree skeleton.

    Deterministic: the same parameters (and seed) always give the same
    sequence of sections, leaves and fruit placements.
    """
    params = _finite_params(params)
    if rand is None:
        rand = Mulberry32(params.seed or DEFAULT_SHAPE_SEED)

    skeleton = TreeSkeleton(growth=params.growth)

    if params.growth < SEED_GROWTH_THRESHOLD:
        skeleton.is_seed = True
        return skeleton

    # Trunk: nearly perfectly vertical (tiny lean for life)
    trunk_dir = vec_normalize(((rand() - 0.5) * 0.02, (rand() - 0.5) * 0.02, 1.0))
    queue = [_QueuedBranch(origin=(0.0, 0.0, 0.0), direction=trunk_dir,
                           length=params.trunk_length, radius=params.trunk_radius,
                           level=0)]
    head = 0

    max_level = int(math.floor(params.levels))
    fractional = params.levels - max_level

    while head < len(queue):
        skeleton.iterations += 1
        if skeleton.iterations > MAX_ITERATIONS:
            skeleton.iterations = MAX_ITERATIONS
            skeleton.truncated = True
            logger.warning(
                f"Tree generation hit the {MAX_ITERATIONS}-iteration safety limit; "
                f"returning {len(skeleton.segments)} segments")
            break

        branch = queue[head]
        head += 1

        if branch.length < MIN_BRANCH_LENGTH or branch.radius < MIN_BRANCH_RADIUS:
            continue

        segment = build_branch_path(branch.origin, branch.direction, branch.length,
                                    branch.radius, branch.level, params, rand)
        skeleton.segments.append(segment)
        tip = segment.tip
        level = branch.level

        is_terminal = level >= max_level
        is_partial = level == max_level and fractional > 0

        if is_terminal and not is_partial:
            add_leaf_cluster(skeleton, tip, params, rand)
            skeleton.terminal_tips.append(tip)
            continue

        child_count = _child_count(params, is_partial, fractional, rand)
        if child_count == 0:
            add_leaf_cluster(skeleton, tip, params, rand)
            skeleton.terminal_tips.append(tip)
            continue

        tip_orientation = segment.tip_orientation
        radial_offset = rand() * math.pi * 2
        for i in range(child_count):
            # Entries past the iteration cap would never be expanded
            if len(queue) > MAX_ITERATIONS:
                break
            radial_angle = radial_offset + (i / child_count) * math.pi * 2
            pitch = params.branch_angle + (rand() - 0.5) * 0.25

            child_dir = quat_rotate(tip_orientation, (
                math.sin(pitch) * math.cos(radial_angle),
                math.sin(pitch) * math.sin(radial_angle),
                math.cos(pitch),
            ))

            # Keep children pointing generally upward
            if child_dir[2] < 0.1:
                child_dir = vec_normalize((child_dir[0], child_dir[1], 0.1 + rand() * 0.2))

            child_length = branch.length * params.length_falloff * (0.85 + rand() * 0.3)
            child_radius = branch.radius * params.radius_falloff * (0.85 + rand() * 0.3)

            # Spawn 70-100% along the parent, not all at the tip
            spawn_t = 0.7 + rand() * 0.3
            queue.append(_QueuedBranch(
                origin=vec_lerp(branch.origin, tip, spawn_t),
                direction=child_dir,
                length=child_length,
                radius=child_radius,
                level=level + 1,
            ))

        # Leaves at near-terminal branches too
        if level >= max_level - 1:
            add_leaf_cluster(skeleton, tip, params, rand)

    place_fruits(skeleton, params)
    return skeleton
