from .rng import Mulberry32, seeded
from .params import (
    EngagementSnapshot, MemoEntry, MemoStatus, FruitDescriptor,
    GrowthConfig, GrowthParameters, GrowthSource, compute_growth, QURAN_PAGES,
)
from .stages import (
    TreeStage, TREE_STAGES, StageStatus, classify, get_tree_stage,
    get_next_stage, get_progress_to_next_stage, get_khatm_count,
    stage_label_for_growth,
)
