from .generator import (
    TreeSkeleton, BranchSegment, Section, Decoration, FruitPlacement,
    generate_tree, build_branch_path, tube_arrays, MAX_ITERATIONS,
)
