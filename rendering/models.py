"""
Procedural 3D model generation for the Sidr garden.
Creates all geometry programmatically (no external assets needed).

Every build_* function is a pure factory: it returns a detached NodePath
subtree that the SceneComposer attaches, replaces and removes.
"""

import math
from typing import Iterable, List, Sequence, Tuple

import numpy as np
from panda3d.core import (
    GeomVertexFormat, GeomVertexData, GeomVertexWriter,
    Geom, GeomTriangles, GeomPoints, GeomNode,
    LColor, LVecBase3, NodePath, Material, PointLight,
    TransparencyAttrib,
)

from garden.layout import BadgeStone, GardenLayout
from growth.params import GrowthParameters
from sky.timeofday import SkyConfig
from tree.generator import Decoration, TreeSkeleton, tube_arrays

Color = Tuple[float, ...]


# =========================================================
# PALETTE
# =========================================================

SOIL_COLOR = (0.24, 0.17, 0.12, 1)
SEED_COLOR = (0.36, 0.24, 0.12, 1)
BLOSSOM_COLOR = (1.0, 0.75, 0.85, 1)
BLOSSOM_EMISSION = (0.2, 0.05, 0.1, 1)
FRUIT_COLOR = (0.95, 0.7, 0.15, 1)
FRUIT_EMISSION = (0.15, 0.08, 0.0, 1)
STEM_COLOR = (0.165, 0.353, 0.063, 1)
FIREFLY_COLOR = (0.6, 1.0, 0.3)
FIREFLY_LIGHT_COLOR = (0.533, 1.0, 0.333)
FIREFLY_LIGHT_RANGE = 2.4


def _mix(a: Sequence[float], b: Sequence[float], t: float) -> Tuple[float, ...]:
    return tuple(x + (y - x) * t for x, y in zip(a, b))


def bark_color(vibrancy: float, bloom_intensity: float) -> Color:
    base = (0.3, 0.18, 0.08)
    if bloom_intensity > 0:
        # Golden accents after completions
        base = _mix(base, (0.4, 0.28, 0.08), bloom_intensity * 0.3)
    base = _mix(base, (0.35, 0.2, 0.1), vibrancy * 0.2)
    return base + (1,)


def leaf_color(vibrancy: float, has_bloom: bool, bloom_intensity: float) -> Color:
    green = (0.1, 0.25 + vibrancy * 0.3, 0.05)
    if has_bloom:
        green = _mix(green, (0.2, 0.45, 0.15), bloom_intensity * 0.3)
    return green + (1,)


def bloom_color(bloom_intensity: float) -> Color:
    return _mix((1.0, 0.92, 0.95), (1.0, 0.8, 0.5), bloom_intensity * 0.3) + (1,)


def _emissive(color: Sequence[float], emission: Sequence[float]) -> Material:
    mat = Material()
    mat.setDiffuse(LColor(*color))
    mat.setAmbient(LColor(*color))
    mat.setEmission(LColor(*emission))
    return mat


# =========================================================
# PRIMITIVES
# =========================================================

def _writers(name: str, fmt=None):
    vdata = GeomVertexData(name, fmt or GeomVertexFormat.getV3n3c4(), Geom.UHStatic)
    return (vdata,
            GeomVertexWriter(vdata, 'vertex'),
            GeomVertexWriter(vdata, 'normal'),
            GeomVertexWriter(vdata, 'color'))


def _finish(name: str, vdata: GeomVertexData, prim) -> NodePath:
    geom = Geom(vdata)
    geom.addPrimitive(prim)
    node = GeomNode(name)
    node.addGeom(geom)
    return NodePath(node)


def make_cylinder(name, radius_bottom, radius_top, height, segments=8,
                  color=(0.5, 0.5, 0.5, 1)):
    """Open-ended (frustum) cylinder along +Z from the origin."""
    vdata, vertex, normal, col = _writers(name)
    tris = GeomTriangles(Geom.UHStatic)

    slope = (radius_bottom - radius_top) / height if height else 0.0
    for i in range(segments + 1):
        angle = 2 * math.pi * i / segments
        ca, sa = math.cos(angle), math.sin(angle)
        n = LVecBase3(ca, sa, slope)
        n.normalize()
        for r, z in ((radius_bottom, 0.0), (radius_top, height)):
            vertex.addData3(r * ca, r * sa, z)
            normal.addData3(n)
            col.addData4(*color)

    for i in range(segments):
        base = i * 2
        tris.addVertices(base, base + 2, base + 1)
        tris.addVertices(base + 1, base + 2, base + 3)

    return _finish(name, vdata, tris)


def make_cone(name, radius, height, segments=3, color=(0.5, 0.5, 0.5, 1)):
    """Cone with its base centred on the origin, apex at +Z."""
    vdata, vertex, normal, col = _writers(name)
    tris = GeomTriangles(Geom.UHStatic)

    for i in range(segments):
        a0 = 2 * math.pi * i / segments
        a1 = 2 * math.pi * (i + 1) / segments
        mid = (a0 + a1) / 2
        n = LVecBase3(math.cos(mid), math.sin(mid), radius / height)
        n.normalize()
        for x, y, z in ((radius * math.cos(a0), radius * math.sin(a0), 0.0),
                        (radius * math.cos(a1), radius * math.sin(a1), 0.0),
                        (0.0, 0.0, height)):
            vertex.addData3(x, y, z)
            normal.addData3(n)
            col.addData4(*color)
        tris.addVertices(i * 3, i * 3 + 1, i * 3 + 2)

    return _finish(name, vdata, tris)


def make_box(name, sx, sy, sz, color=(0.5, 0.5, 0.5, 1)):
    """Box centred at the origin."""
    vdata, vertex, normal, col = _writers(name)
    tris = GeomTriangles(Geom.UHStatic)

    hx, hy, hz = sx / 2, sy / 2, sz / 2
    faces = [
        ((0, 0, 1), [(-hx, -hy, hz), (hx, -hy, hz), (hx, hy, hz), (-hx, hy, hz)]),
        ((0, 0, -1), [(-hx, hy, -hz), (hx, hy, -hz), (hx, -hy, -hz), (-hx, -hy, -hz)]),
        ((0, 1, 0), [(-hx, hy, -hz), (-hx, hy, hz), (hx, hy, hz), (hx, hy, -hz)]),
        ((0, -1, 0), [(-hx, -hy, hz), (-hx, -hy, -hz), (hx, -hy, -hz), (hx, -hy, hz)]),
        ((1, 0, 0), [(hx, -hy, -hz), (hx, hy, -hz), (hx, hy, hz), (hx, -hy, hz)]),
        ((-1, 0, 0), [(-hx, -hy, hz), (-hx, hy, hz), (-hx, hy, -hz), (-hx, -hy, -hz)]),
    ]

    for idx, (n, verts) in enumerate(faces):
        for v in verts:
            vertex.addData3(*v)
            normal.addData3(*n)
            col.addData4(*color)
        tris.addVertices(idx * 4, idx * 4 + 1, idx * 4 + 2)
        tris.addVertices(idx * 4, idx * 4 + 2, idx * 4 + 3)

    return _finish(name, vdata, tris)


def make_sphere(name, radius, segments=8, rings=6, color=(0.5, 0.5, 0.5, 1),
                squash=1.0):
    """UV sphere; squash < 1 flattens it along Z."""
    vdata, vertex, normal, col = _writers(name)
    tris = GeomTriangles(Geom.UHStatic)

    for j in range(rings + 1):
        phi = math.pi * j / rings
        for i in range(segments + 1):
            theta = 2 * math.pi * i / segments
            nx = math.sin(phi) * math.cos(theta)
            ny = math.sin(phi) * math.sin(theta)
            nz = math.cos(phi)
            vertex.addData3(radius * nx, radius * ny, radius * nz * squash)
            normal.addData3(nx, ny, nz)
            col.addData4(*color)

    for j in range(rings):
        for i in range(segments):
            p0 = j * (segments + 1) + i
            p1 = p0 + 1
            p2 = p0 + segments + 1
            p3 = p2 + 1
            tris.addVertices(p0, p2, p1)
            tris.addVertices(p1, p2, p3)

    return _finish(name, vdata, tris)


def make_disc(name, radius, segments=20, color=(0.5, 0.5, 0.5, 1)):
    """Flat upward-facing disc in the XY plane."""
    vdata, vertex, normal, col = _writers(name)
    tris = GeomTriangles(Geom.UHStatic)

    vertex.addData3(0, 0, 0)
    normal.addData3(0, 0, 1)
    col.addData4(*color)
    for i in range(segments + 1):
        angle = 2 * math.pi * i / segments
        vertex.addData3(radius * math.cos(angle), radius * math.sin(angle), 0)
        normal.addData3(0, 0, 1)
        col.addData4(*color)
    for i in range(segments):
        tris.addVertices(0, i + 1, i + 2)

    return _finish(name, vdata, tris)


def make_tube(name, positions: np.ndarray, normals: np.ndarray,
              triangles: np.ndarray, color=(0.5, 0.5, 0.5, 1)) -> Geom:
    """Geom from precomputed tube arrays (see tree.generator.tube_arrays)."""
    vdata, vertex, normal, col = _writers(name)
    for p, n in zip(positions, normals):
        vertex.addData3(float(p[0]), float(p[1]), float(p[2]))
        normal.addData3(float(n[0]), float(n[1]), float(n[2]))
        col.addData4(*color)

    tris = GeomTriangles(Geom.UHStatic)
    for a, b, c in triangles:
        tris.addVertices(int(a), int(b), int(c))

    geom = Geom(vdata)
    geom.addPrimitive(tris)
    return geom


def make_points(name, positions: Iterable[Sequence[float]],
                colors: Iterable[Sequence[float]], thickness=2.0) -> NodePath:
    """Unlit point cloud whose vertex data can be rewritten every frame."""
    vdata = GeomVertexData(name, GeomVertexFormat.getV3c4(), Geom.UHDynamic)
    vertex = GeomVertexWriter(vdata, 'vertex')
    col = GeomVertexWriter(vdata, 'color')
    pts = GeomPoints(Geom.UHDynamic)

    for k, (p, c) in enumerate(zip(positions, colors)):
        vertex.addData3(*p)
        col.addData4(c[0], c[1], c[2], 1.0)
        pts.addVertex(k)

    points_np = _finish(name, vdata, pts)
    points_np.setLightOff()
    points_np.setRenderModeThickness(thickness)
    points_np.setTransparency(TransparencyAttrib.MAlpha)
    points_np.setDepthWrite(False)
    return points_np


def rewrite_point_column(points_np: NodePath, column: str,
                         values: Iterable[Sequence[float]]):
    """Overwrite the 'vertex' or 'color' column of a make_points cloud."""
    vdata = points_np.node().modifyGeom(0).modifyVertexData()
    writer = GeomVertexWriter(vdata, column)
    for v in values:
        if column == 'color':
            writer.setData4(v[0], v[1], v[2], 1.0)
        else:
            writer.setData3(v[0], v[1], v[2])


def _place(proto: NodePath, parent: NodePath, deco: Decoration) -> NodePath:
    inst = proto.copyTo(parent)
    inst.setPos(*deco.position)
    inst.setHpr(*deco.hpr)
    inst.setScale(*deco.scale)
    return inst


# =========================================================
# TREE
# =========================================================

def build_tree(skeleton: TreeSkeleton, params: GrowthParameters) -> NodePath:
    """
    Build the Sidr tree from a skeleton.

    Structure:
    - soil: dark soil disc under the trunk
    - seed: embryo marker (seed stage only)
    - bark: one GeomNode, one tube geom per branch segment
    - foliage: leaves and blooms, flattened into few geoms
    - fruits: one node per memorization blossom/fruit
    """
    tree_np = NodePath("tree")

    soil = make_disc("soil", 2.0, 20, SOIL_COLOR)
    soil.reparentTo(tree_np)
    soil.setZ(-0.01)

    if skeleton.is_seed:
        seed = make_sphere("seed", 0.05, 8, 6, SEED_COLOR)
        seed.reparentTo(tree_np)
        seed.setZ(0.03)
        return tree_np

    bark = GeomNode("bark")
    color = bark_color(params.vibrancy, params.bloom_intensity)
    for i, segment in enumerate(skeleton.segments):
        positions, normals, triangles = tube_arrays(segment)
        bark.addGeom(make_tube(f"branch_{i}", positions, normals, triangles, color))
    tree_np.attachNewNode(bark)

    foliage = tree_np.attachNewNode("foliage")
    leaf_proto = make_sphere("leaf", 1.0, 5, 4,
                             leaf_color(params.vibrancy, params.has_bloom,
                                        params.bloom_intensity), squash=0.6)
    for deco in skeleton.leaves:
        _place(leaf_proto, foliage, deco)

    if skeleton.blooms:
        petals = bloom_color(params.bloom_intensity)
        bloom_proto = make_sphere("bloom", 1.0, 5, 4, petals, squash=0.6)
        bloom_proto.setMaterial(_emissive(petals, tuple(c * 0.15 for c in petals[:3]) + (1,)))
        for deco in skeleton.blooms:
            _place(bloom_proto, foliage, deco)
    foliage.setTwoSided(True)
    foliage.flattenStrong()

    fruits = tree_np.attachNewNode("fruits")
    blossom_proto = make_sphere("blossom", 1.0, 6, 5, BLOSSOM_COLOR)
    blossom_proto.setMaterial(_emissive(BLOSSOM_COLOR, BLOSSOM_EMISSION))
    fruit_proto = make_sphere("fruit", 1.0, 6, 5, FRUIT_COLOR)
    fruit_proto.setMaterial(_emissive(FRUIT_COLOR, FRUIT_EMISSION))
    for placement in skeleton.fruits:
        proto = fruit_proto if placement.decoration.kind == "fruit" else blossom_proto
        inst = _place(proto, fruits, placement.decoration)
        inst.setName(f"{placement.decoration.kind}_{placement.surah_id}")
        inst.setPythonTag("surah_id", placement.surah_id)

    return tree_np


# =========================================================
# GARDEN & BADGES
# =========================================================

def build_garden(layout: GardenLayout) -> NodePath:
    """Grass tufts, wildflowers and shrubs around the tree."""
    garden_np = NodePath("garden")
    if layout.level == 0:
        return garden_np

    blade_proto = make_cone("blade", 0.025, 0.2, 3, layout.grass_color + (1,))
    for i, tuft in enumerate(layout.grass):
        tuft_np = garden_np.attachNewNode(f"grass_{i}")
        tuft_np.setPos(*tuft.position)
        for offset, hpr in tuft.blades:
            blade = blade_proto.copyTo(tuft_np)
            blade.setPos(*offset)
            blade.setHpr(*hpr)
        tuft_np.setTwoSided(True)

    if layout.flowers:
        stem_proto = make_cylinder("stem", 0.015, 0.012, 0.28, 4, STEM_COLOR)
        for i, flower in enumerate(layout.flowers):
            flower_np = garden_np.attachNewNode(f"flower_{i}")
            flower_np.setPos(*flower.position)
            stem_proto.copyTo(flower_np)
            bloom = make_sphere("petals", 0.065, 4, 3, flower.color + (1,), squash=0.5)
            bloom.reparentTo(flower_np)
            bloom.setZ(0.3)

    if layout.shrubs:
        color = layout.shrub_color + (1,)
        body_proto = make_sphere("shrub_body", 0.3, 5, 4, color, squash=0.65)
        lobe_proto = make_sphere("shrub_lobe", 0.2, 5, 4, color, squash=0.6)
        for i, shrub in enumerate(layout.shrubs):
            shrub_np = garden_np.attachNewNode(f"shrub_{i}")
            shrub_np.setPos(*shrub.position)
            body_proto.copyTo(shrub_np).setZ(0.2)
            lobe_proto.copyTo(shrub_np).setPos(*shrub.lobe_offset)

    return garden_np


def build_badge_markers(stones: List[BadgeStone]) -> NodePath:
    """One small stone stele per completed khatm."""
    badges_np = NodePath("badges")
    for stone in stones:
        color = stone.color + (1,)
        marker = make_box(f"badge_{stone.index}", 0.09, 0.065, stone.height, color)
        marker.reparentTo(badges_np)
        marker.setPos(*stone.position)
        marker.setH(stone.heading)
        marker.setR(stone.lean)
        marker.setMaterial(_emissive(color, stone.emission + (1,)))
        marker.setPythonTag("special", stone.special)
    return badges_np


# =========================================================
# SKY
# =========================================================

def build_celestial_body(sky: SkyConfig) -> NodePath:
    """Unlit sun (day) or moon (night) sphere."""
    name = "moon" if sky.is_night else "sun"
    body = make_sphere(name, sky.body_size, 12, 8, sky.body_color + (1,))
    body.setPos(*sky.body_position)
    body.setLightOff()
    body.setFogOff()
    return body


def build_ground(size=60.0, color=(0.165, 0.353, 0.078, 1)) -> NodePath:
    """Large ground plane just below the soil disc; fog hides its edge."""
    vdata, vertex, normal, col = _writers("ground")
    tris = GeomTriangles(Geom.UHStatic)
    h = size / 2
    for x, y in ((-h, -h), (h, -h), (h, h), (-h, h)):
        vertex.addData3(x, y, 0)
        normal.addData3(0, 0, 1)
        col.addData4(*color)
    tris.addVertices(0, 1, 2)
    tris.addVertices(0, 2, 3)
    ground = _finish("ground", vdata, tris)
    ground.setZ(-0.02)
    return ground


def build_stars(positions, colors) -> NodePath:
    stars = make_points("stars", positions, colors, thickness=2.0)
    stars.setFogOff()
    stars.setBin("background", 1)
    return stars


def build_fireflies(positions) -> NodePath:
    return make_points("fireflies", positions,
                       [FIREFLY_COLOR] * len(positions), thickness=3.0)


def build_firefly_lights(count: int) -> List[NodePath]:
    """Point lights that start dark; the render loop drives their colour."""
    lights = []
    for i in range(count):
        light = PointLight(f"firefly_light_{i}")
        light.setColor(LColor(0, 0, 0, 1))
        # Inverse-square falloff, cut off at the light's range
        light.setAttenuation(LVecBase3(1, 0, 1.0 / (FIREFLY_LIGHT_RANGE ** 2)))
        light.setMaxDistance(FIREFLY_LIGHT_RANGE)
        lights.append(NodePath(light))
    return lights
