"""
Tree Stage Classifier — discrete milestones of the Sidr tree.

Stages:
  - Seed        : initial state (0 pages)
  - Sprout      : >= 20 pages read
  - Young Tree  : >= 100 pages read
  - Full Bloom  : >= 604 pages and 3 Khatms completed
  - Ancient Tree: >= 604 pages and 10 Khatms completed

Stages are recomputed on every snapshot and never persisted here.
"""

from dataclasses import dataclass
from typing import List, Optional

from .params import QURAN_PAGES


@dataclass(frozen=True)
class TreeStage:
    key: str
    label: str
    emoji: str
    description: str
    min_pages: int
    min_khatms: int

    def reached(self, total_pages: float, khatms: float) -> bool:
        return total_pages >= self.min_pages and khatms >= self.min_khatms


TREE_STAGES: List[TreeStage] = [
    TreeStage("seed", "Seed", "\U0001F331",
              "Your journey begins with a single seed.", 0, 0),
    TreeStage("sprout", "Sprout", "\U0001F33F",
              "Your seed has sprouted — keep going!", 20, 0),
    TreeStage("youngTree", "Young Tree", "\U0001F333",
              "A young tree stands tall with strong roots.", 100, 0),
    TreeStage("fullBloom", "Full Bloom", "\U0001F338",
              "Your tree blossoms — 3 completions celebrated!", QURAN_PAGES, 3),
    TreeStage("ancientTree", "Ancient Tree", "\U0001F332",
              "An ancient, majestic tree of wisdom.", QURAN_PAGES, 10),
]


@dataclass(frozen=True)
class StageStatus:
    stage: TreeStage
    progress: float
    next_stage: Optional[TreeStage]

    @property
    def is_final(self) -> bool:
        return self.next_stage is None


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def get_tree_stage(total_pages: float, khatms: float) -> TreeStage:
    """Last stage whose page and khatm thresholds are both met."""
    current = TREE_STAGES[0]
    for stage in TREE_STAGES:
        if stage.reached(total_pages, khatms):
            current = stage
    return current


def get_next_stage(total_pages: float, khatms: float) -> Optional[TreeStage]:
    index = TREE_STAGES.index(get_tree_stage(total_pages, khatms))
    if index == len(TREE_STAGES) - 1:
        return None
    return TREE_STAGES[index + 1]


def get_progress_to_next_stage(total_pages: float, khatms: float) -> float:
    """Fraction (0–1) of the way to the next stage; 1 at the final stage."""
    current = get_tree_stage(total_pages, khatms)
    nxt = get_next_stage(total_pages, khatms)
    if nxt is None:
        return 1.0

    if nxt.min_khatms > khatms:
        khatm_range = nxt.min_khatms - current.min_khatms
        return _clamp01((khatms - current.min_khatms) / khatm_range)

    if nxt.min_pages == current.min_pages:
        return 1.0

    return _clamp01((total_pages - current.min_pages)
                    / (nxt.min_pages - current.min_pages))


def classify(total_pages: float, khatms: float) -> StageStatus:
    return StageStatus(
        stage=get_tree_stage(total_pages, khatms),
        progress=get_progress_to_next_stage(total_pages, khatms),
        next_stage=get_next_stage(total_pages, khatms),
    )


def get_khatm_count(total_pages: int) -> int:
    """Number of full read-throughs contained in a page total."""
    return max(0, int(total_pages) // QURAN_PAGES)


def stage_label_for_growth(growth: float) -> str:
    """Label shown while the developer growth slider drives the tree."""
    if growth < 0.01:
        return "Seed"
    if growth < 0.2:
        return "Sprout"
    if growth < 0.5:
        return "Young Tree"
    if growth < 0.8:
        return "Mature Tree"
    return "Ancient Tree"
