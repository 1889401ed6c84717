"""
Growth Parameter Model — engagement statistics to tree shape parameters.

Every page, every minute, every streak day changes the tree:
  totalPages   → trunk height, girth, branch depth/count
  totalMinutes → leaf density & size
  dayStreak    → colour vibrancy
  khatms       → blooms, golden bark accents
  memo         → blossoms and fruit at branch tips

The mapping is a pure function: identical snapshots always give identical
parameters, and the integer seed only changes at page/khatm granularity so
the tree keeps its shape between sessions.
"""

import math
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


QURAN_PAGES = 604


class MemoStatus(str, Enum):
    ACTIVE = "active"
    COMPLETE = "complete"
    DECAYED = "decayed"


class GrowthSource(str, Enum):
    SNAPSHOT = "snapshot"     # derived from real engagement
    OVERRIDE = "override"     # developer-supplied parameters


@dataclass(frozen=True)
class GrowthConfig:
    """Product-design constants for the snapshot → parameters mapping."""
    full_pages: float = QURAN_PAGES
    minute_ceiling: float = 600.0
    streak_ceiling: float = 30.0
    khatm_ceiling: float = 10.0

    # growth = page_weight * pageNorm + khatm_weight * khatmNorm
    page_weight: float = 0.6
    khatm_weight: float = 0.4

    # leafDensity = minute_leaf_weight * minuteNorm + page_leaf_weight * pageNorm
    minute_leaf_weight: float = 0.7
    page_leaf_weight: float = 0.3


DEFAULT_GROWTH_CONFIG = GrowthConfig()


def clamp01(value: float) -> float:
    if value != value:  # NaN
        return 0.0
    return max(0.0, min(1.0, value))


def _as_count(value: Any) -> int:
    """Coerce a reducer field to a non-negative int; junk becomes 0."""
    if isinstance(value, bool):
        return int(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number) or number < 0:
        return 0
    return int(number)


def _memo_sort_key(item: Tuple[Any, Any]) -> Tuple[int, int, str]:
    """Integer-like surah ids first in numeric order, then the rest by name."""
    key = str(item[0])
    if key.isdigit():
        return (0, int(key), "")
    return (1, 0, key)


# =========================================================
# SNAPSHOT
# =========================================================

@dataclass(frozen=True)
class MemoEntry:
    """Per-surah memorization record as stored by the reducer."""
    status: str = MemoStatus.ACTIVE.value
    verse_confidence: Optional[Tuple[Tuple[str, str], ...]] = None
    verses_memorized: Optional[Tuple[int, ...]] = None

    @property
    def good_count(self) -> int:
        if self.verse_confidence is not None:
            return sum(1 for _, level in self.verse_confidence if level == "good")
        if self.verses_memorized is not None:
            return len(self.verses_memorized)
        return 0

    @property
    def is_decayed(self) -> bool:
        return self.status == MemoStatus.DECAYED.value

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "MemoEntry":
        if not isinstance(data, Mapping):
            return cls()
        confidence = data.get("verseConfidence", data.get("verse_confidence"))
        memorized = data.get("versesMemorized", data.get("verses_memorized"))
        return cls(
            status=str(data.get("status") or MemoStatus.ACTIVE.value),
            verse_confidence=(
                tuple((str(k), str(v)) for k, v in confidence.items())
                if isinstance(confidence, Mapping) else None
            ),
            verses_memorized=(
                tuple(memorized) if isinstance(memorized, (list, tuple, set, frozenset))
                else None
            ),
        )


@dataclass(frozen=True)
class EngagementSnapshot:
    """Plain statistics snapshot handed over by the persistence layer."""
    total_pages: int = 0
    total_minutes: int = 0
    day_streak: int = 0
    khatms: int = 0
    memo: Tuple[Tuple[str, MemoEntry], ...] = ()

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "EngagementSnapshot":
        """Build from the reducer's state mapping (camelCase or snake_case)."""
        data = data if isinstance(data, Mapping) else {}

        def pick(camel: str, snake: str) -> int:
            return _as_count(data.get(camel, data.get(snake, 0)))

        memo = data.get("memo")
        entries: Tuple[Tuple[str, MemoEntry], ...] = ()
        if isinstance(memo, Mapping):
            # Ascending surah id, so the same memo set always maps to the same tips
            entries = tuple(
                (str(surah_id), MemoEntry.from_dict(entry))
                for surah_id, entry in sorted(memo.items(), key=_memo_sort_key)
                if entry
            )

        return cls(
            total_pages=pick("totalPages", "total_pages"),
            total_minutes=pick("totalMinutes", "total_minutes"),
            day_streak=pick("dayStreak", "day_streak"),
            khatms=pick("khatms", "khatms"),
            memo=entries,
        )


@dataclass(frozen=True)
class FruitDescriptor:
    surah_id: int
    progress: int
    status: str

    @property
    def is_complete(self) -> bool:
        return self.status == MemoStatus.COMPLETE.value


# =========================================================
# PARAMETERS
# =========================================================

@dataclass(frozen=True)
class GrowthParameters:
    """Continuous shape parameters for the Branch Generator."""
    growth: float
    trunk_length: float
    trunk_radius: float
    levels: float
    children_per_node: float
    branch_angle: float
    length_falloff: float
    radius_falloff: float
    taper: float
    gnarliness: float
    twist: float
    leaf_density: float
    leaf_size: float
    vibrancy: float
    has_bloom: bool
    bloom_intensity: float
    seed: int
    fruits: Tuple[FruitDescriptor, ...] = ()
    source: GrowthSource = field(default=GrowthSource.SNAPSHOT, compare=False)

    @classmethod
    def from_snapshot(cls, snapshot: EngagementSnapshot,
                      config: GrowthConfig = DEFAULT_GROWTH_CONFIG) -> "GrowthParameters":
        pages = snapshot.total_pages
        khatms = snapshot.khatms

        page_norm = clamp01(pages / config.full_pages)
        minute_norm = clamp01(snapshot.total_minutes / config.minute_ceiling)
        streak_norm = clamp01(snapshot.day_streak / config.streak_ceiling)
        khatm_norm = clamp01(khatms / config.khatm_ceiling)

        # Single continuous factor 0→1
        g = page_norm * config.page_weight + khatm_norm * config.khatm_weight

        fruits = []
        for surah_id, entry in snapshot.memo:
            if entry.is_decayed:
                continue
            fruits.append(FruitDescriptor(
                surah_id=_as_count(surah_id),
                progress=entry.good_count,
                status=entry.status,
            ))

        return cls(
            **_structure(g),
            leaf_density=(minute_norm * config.minute_leaf_weight
                          + page_norm * config.page_leaf_weight),
            vibrancy=0.3 + streak_norm * 0.7,
            has_bloom=khatms >= 1,
            bloom_intensity=khatm_norm,
            seed=int(math.floor(pages * 0.1 + khatms * 1000)),
            fruits=tuple(fruits),
            source=GrowthSource.SNAPSHOT,
        )

    @classmethod
    def from_growth(cls, growth: float) -> "GrowthParameters":
        """Developer-mode parameters driven by a single growth slider."""
        g = clamp01(float(growth))
        return cls(
            **_structure(g),
            leaf_density=g,
            vibrancy=0.3 + g * 0.7,
            has_bloom=g > 0.3,
            bloom_intensity=max(0.0, (g - 0.3) / 0.7),
            seed=int(math.floor(g * 10000)),
            source=GrowthSource.OVERRIDE,
        )

    @classmethod
    def from_override(cls, values: Mapping[str, Any]) -> "GrowthParameters":
        """Explicit developer override; must carry exactly the scalar fields."""
        expected = set(SCALAR_FIELDS)
        given = set(values)
        missing = expected - given
        unknown = given - expected - {"fruits", "source"}
        if missing or unknown:
            raise ValueError(
                f"override shape mismatch (missing={sorted(missing)}, "
                f"unknown={sorted(unknown)})")
        kwargs: Dict[str, Any] = {}
        for name in SCALAR_FIELDS:
            value = values[name]
            if name == "has_bloom":
                kwargs[name] = bool(value)
                continue
            number = float(value)
            if not math.isfinite(number):
                raise ValueError(f"override field {name} must be finite, got {value!r}")
            kwargs[name] = int(number) if name == "seed" else number
        fruits = tuple(
            FruitDescriptor(
                surah_id=_as_count(f.get("surah_id")),
                progress=_as_count(f.get("progress")),
                status=str(f.get("status", MemoStatus.ACTIVE.value)),
            )
            for f in values.get("fruits") or () if isinstance(f, Mapping)
        )
        return cls(**kwargs, fruits=fruits, source=GrowthSource.OVERRIDE)

    def to_dict(self) -> Dict[str, Any]:
        out = {name: getattr(self, name) for name in SCALAR_FIELDS}
        out["fruits"] = [
            {"surah_id": f.surah_id, "progress": f.progress, "status": f.status}
            for f in self.fruits
        ]
        out["source"] = self.source.value
        return out


SCALAR_FIELDS: Tuple[str, ...] = tuple(
    f.name for f in fields(GrowthParameters) if f.name not in ("fruits", "source")
)


def _structure(g: float) -> Dict[str, float]:
    """Structural parameters shared by the snapshot and slider mappings."""
    return {
        "growth": g,
        # Trunk grows taller and much thicker
        "trunk_length": 0.3 + g * 2.2,
        "trunk_radius": 0.02 + g * 0.28,
        # Branching
        "levels": g * 4,
        "children_per_node": 1.5 + g * 2.5,
        "branch_angle": 0.5 + g * 0.3,
        "length_falloff": 0.55 + g * 0.1,
        "radius_falloff": 0.45 + g * 0.1,
        "taper": 0.6 + g * 0.25,
        # Young trees look rougher relative to their size
        "gnarliness": 0.03 + (1 - g) * 0.04,
        "twist": 0.15 + g * 0.15,
        "leaf_size": 0.06 + g * 0.12,
    }


def compute_growth(snapshot: EngagementSnapshot,
                   config: GrowthConfig = DEFAULT_GROWTH_CONFIG) -> GrowthParameters:
    return GrowthParameters.from_snapshot(snapshot, config)
