"""Headless checks of the Panda3D builders (no window is opened)."""

import pytest
from panda3d.core import GeomVertexReader, LColor, PointLight

from garden.layout import layout_badges, layout_garden
from growth.params import EngagementSnapshot, GrowthParameters, compute_growth
from rendering.models import (
    build_badge_markers, build_celestial_body, build_firefly_lights,
    build_garden, build_ground, build_stars, build_tree, make_points,
    rewrite_point_column,
)
from sky.timeofday import get_time_of_day_config
from tree.generator import generate_tree


def _read_column(points_np, column):
    vdata = points_np.node().getGeom(0).getVertexData()
    reader = GeomVertexReader(vdata, column)
    values = []
    while not reader.isAtEnd():
        v = reader.getData4() if column == 'color' else reader.getData3()
        values.append(tuple(v)[:3])
    return values


class TestTree:

    def test_seed_stage(self):
        params = compute_growth(EngagementSnapshot())
        tree = build_tree(generate_tree(params), params)
        assert not tree.find("seed").isEmpty()
        assert not tree.find("soil").isEmpty()
        assert tree.find("bark").isEmpty()

    def test_one_tube_per_segment(self):
        params = GrowthParameters.from_growth(0.6)
        skeleton = generate_tree(params)
        tree = build_tree(skeleton, params)
        bark = tree.find("bark")
        assert bark.node().getNumGeoms() == len(skeleton.segments)
        assert not tree.find("foliage").isEmpty()
        assert tree.find("seed").isEmpty()

    def test_fruit_nodes_are_tagged(self):
        snapshot = EngagementSnapshot.from_dict({
            "totalPages": 400,
            "memo": {
                "2": {"status": "complete", "versesMemorized": [1, 2, 3]},
                "55": {"status": "active", "verseConfidence": {"1": "good"}},
            },
        })
        params = compute_growth(snapshot)
        tree = build_tree(generate_tree(params), params)
        fruits = tree.find("fruits")
        names = sorted(child.getName() for child in fruits.getChildren())
        assert names == ["blossom_55", "fruit_2"]
        assert fruits.find("fruit_2").getPythonTag("surah_id") == 2


class TestGarden:

    def test_empty_garden(self):
        assert build_garden(layout_garden(0, 0)).getNumChildren() == 0

    def test_full_garden(self):
        garden = build_garden(layout_garden(900, 20))
        assert garden.getNumChildren() == 54 + 20 + 5
        assert not garden.find("grass_0").isEmpty()
        assert not garden.find("flower_19").isEmpty()
        assert not garden.find("shrub_4").isEmpty()

    def test_badges(self):
        badges = build_badge_markers(layout_badges(6))
        assert badges.getNumChildren() == 6
        assert badges.find("badge_5").getPythonTag("special") is True
        assert badges.find("badge_1").getPythonTag("special") is False


class TestSky:

    @pytest.mark.parametrize("hour,name", [(12.0, "sun"), (23.0, "moon")])
    def test_celestial_body(self, hour, name):
        sky = get_time_of_day_config(hour)
        body = build_celestial_body(sky)
        assert body.getName() == name
        assert tuple(body.getPos()) == pytest.approx(sky.body_position, abs=1e-4)

    def test_ground(self):
        ground = build_ground()
        assert ground.getZ() == pytest.approx(-0.02)
        lo, hi = ground.getTightBounds()
        assert hi.x - lo.x == pytest.approx(60.0)

    def test_firefly_lights_start_dark(self):
        lights = build_firefly_lights(6)
        assert len(lights) == 6
        for light_np in lights:
            assert isinstance(light_np.node(), PointLight)
            assert light_np.node().getColor() == LColor(0, 0, 0, 1)


class TestPoints:

    def test_rewrite_columns(self):
        points = make_points("pts", [(0, 0, 0), (1, 1, 1)], [(1, 0, 0), (0, 1, 0)])
        rewrite_point_column(points, 'vertex', [(2, 2, 2), (3, 4, 5)])
        rewrite_point_column(points, 'color', [(0.5, 0.5, 0.5), (0, 0, 1)])
        assert _read_column(points, 'vertex') == [
            pytest.approx((2, 2, 2)), pytest.approx((3, 4, 5))]
        assert _read_column(points, 'color') == [
            pytest.approx((0.5, 0.5, 0.5), abs=0.01), pytest.approx((0, 0, 1), abs=0.01)]

    def test_stars_ignore_fog(self):
        stars = build_stars([(0, 0, 17)], [(1, 1, 1)])
        assert stars.hasFogOff()
