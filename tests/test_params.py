import math

import pytest

from growth.params import (
    EngagementSnapshot, GrowthConfig, GrowthParameters, GrowthSource,
    MemoEntry, SCALAR_FIELDS, compute_growth,
)


READER_STATE = {
    "totalPages": 150,
    "totalMinutes": 240,
    "dayStreak": 12,
    "khatms": 1,
    "memo": {
        "1": {"status": "complete",
              "verseConfidence": {"1": "good", "2": "good", "3": "good"}},
        "112": {"status": "active", "versesMemorized": [1, 2]},
        "36": {"status": "decayed", "verseConfidence": {"1": "good"}},
    },
}


class TestSnapshotParsing:

    def test_camel_case_fields(self):
        snap = EngagementSnapshot.from_dict(READER_STATE)
        assert snap.total_pages == 150
        assert snap.total_minutes == 240
        assert snap.day_streak == 12
        assert snap.khatms == 1
        assert len(snap.memo) == 3

    def test_snake_case_fields(self):
        snap = EngagementSnapshot.from_dict({"total_pages": 7, "day_streak": 2})
        assert snap.total_pages == 7
        assert snap.day_streak == 2
        assert snap.total_minutes == 0

    def test_malformed_fields_default_to_zero(self):
        snap = EngagementSnapshot.from_dict({
            "totalPages": "lots", "totalMinutes": None, "dayStreak": -4,
            "khatms": float("nan"), "memo": ["not", "a", "mapping"],
        })
        assert snap == EngagementSnapshot()

    def test_none_snapshot(self):
        assert EngagementSnapshot.from_dict(None) == EngagementSnapshot()

    def test_memo_sorted_by_surah_id(self):
        memo = {"114": {"status": "active"}, "2": {"status": "active"},
                "36": {"status": "complete"}}
        snap = EngagementSnapshot.from_dict({"memo": memo})
        assert [surah_id for surah_id, _ in snap.memo] == ["2", "36", "114"]
        reordered = EngagementSnapshot.from_dict({"memo": dict(reversed(list(memo.items())))})
        assert reordered == snap

    def test_memo_good_count(self):
        assert MemoEntry.from_dict(
            {"verseConfidence": {"1": "good", "2": "weak", "3": "good"}}).good_count == 2
        assert MemoEntry.from_dict({"versesMemorized": [1, 2, 3, 4]}).good_count == 4
        assert MemoEntry.from_dict({}).good_count == 0


class TestGrowthParameters:

    def test_identical_snapshots_give_identical_parameters(self):
        a = compute_growth(EngagementSnapshot.from_dict(READER_STATE))
        b = compute_growth(EngagementSnapshot.from_dict(dict(READER_STATE)))
        assert a == b
        assert a.to_dict() == b.to_dict()

    def test_growth_blend(self):
        params = compute_growth(EngagementSnapshot(total_pages=302))
        assert params.growth == pytest.approx(0.3)
        full = compute_growth(EngagementSnapshot(total_pages=6040, khatms=10))
        assert full.growth == pytest.approx(1.0)

    def test_seed_formula(self):
        params = compute_growth(EngagementSnapshot(total_pages=150, khatms=1))
        assert params.seed == math.floor(150 * 0.1 + 1000)

    def test_monotonic_in_pages(self):
        previous = None
        for pages in range(0, 1300, 25):
            params = compute_growth(EngagementSnapshot(total_pages=pages, khatms=2))
            if previous is not None:
                assert params.growth >= previous.growth
                assert params.trunk_length >= previous.trunk_length
                assert params.trunk_radius >= previous.trunk_radius
            previous = params

    def test_bloom_requires_a_khatm(self):
        assert not compute_growth(EngagementSnapshot(total_pages=600)).has_bloom
        params = compute_growth(EngagementSnapshot(total_pages=604, khatms=3))
        assert params.has_bloom
        assert params.bloom_intensity == pytest.approx(0.3)

    def test_vibrancy_follows_streak(self):
        assert compute_growth(EngagementSnapshot()).vibrancy == pytest.approx(0.3)
        assert compute_growth(EngagementSnapshot(day_streak=90)).vibrancy == pytest.approx(1.0)

    def test_fruits_skip_decayed_entries(self):
        params = compute_growth(EngagementSnapshot.from_dict(READER_STATE))
        assert [(f.surah_id, f.progress, f.status) for f in params.fruits] == [
            (1, 3, "complete"), (112, 2, "active")]
        assert params.fruits[0].is_complete

    def test_weights_are_configurable(self):
        config = GrowthConfig(page_weight=1.0, khatm_weight=0.0,
                              minute_leaf_weight=0.0, page_leaf_weight=1.0)
        params = compute_growth(EngagementSnapshot(total_pages=604, total_minutes=0), config)
        assert params.growth == pytest.approx(1.0)
        assert params.leaf_density == pytest.approx(1.0)

    def test_snapshot_source_tag(self):
        assert compute_growth(EngagementSnapshot()).source is GrowthSource.SNAPSHOT


class TestOverrides:

    def test_growth_slider(self):
        params = GrowthParameters.from_growth(0.5)
        assert params.source is GrowthSource.OVERRIDE
        assert params.levels == pytest.approx(2.0)
        assert params.has_bloom
        assert params.fruits == ()

    def test_growth_slider_clamps(self):
        assert GrowthParameters.from_growth(3.0).growth == 1.0
        assert GrowthParameters.from_growth(-1.0).growth == 0.0

    def test_explicit_mapping(self):
        expected = compute_growth(EngagementSnapshot.from_dict(READER_STATE))
        params = GrowthParameters.from_override(expected.to_dict())
        assert params == expected
        assert params.source is GrowthSource.OVERRIDE

    def test_shape_mismatch_rejected(self):
        values = GrowthParameters.from_growth(0.4).to_dict()
        del values["twist"]
        with pytest.raises(ValueError, match="twist"):
            GrowthParameters.from_override(values)

        values = GrowthParameters.from_growth(0.4).to_dict()
        values["wobble"] = 1
        with pytest.raises(ValueError, match="wobble"):
            GrowthParameters.from_override(values)

    @pytest.mark.parametrize("name, value", [
        ("trunk_length", float("nan")),
        ("children_per_node", float("inf")),
        ("seed", float("-inf")),
    ])
    def test_non_finite_values_rejected(self, name, value):
        values = GrowthParameters.from_growth(0.4).to_dict()
        values[name] = value
        with pytest.raises(ValueError, match=name):
            GrowthParameters.from_override(values)

    def test_scalar_fields(self):
        assert "growth" in SCALAR_FIELDS
        assert "fruits" not in SCALAR_FIELDS
        assert "source" not in SCALAR_FIELDS
