"""
Ordered, gapless chain of migration steps
"""
from typing import Dict, List, Optional, Sequence

from coffeebot.migrations.operations import MigrationStep


class MigrationRegistry:
    """Holds every known step, keyed by the level it produces.

    New schema changes are added as a new step at `max_level + 1`.
    """

    def __init__(self, steps: Sequence[MigrationStep]):
        ordered = sorted(steps, key=lambda step: step.target_level)
        for expected_level, step in enumerate(ordered, start=1):
            if step.target_level != expected_level:
                raise ValueError(
                    f"Migration steps must form a chain from level 1 without gaps; "
                    f"expected level {expected_level}, found {step.target_level}"
                )
        self._steps: Dict[int, MigrationStep] = {step.target_level: step for step in ordered}

    @property
    def max_level(self) -> int:
        return max(self._steps, default=0)

    def get(self, level: int) -> MigrationStep:
        return self._steps[level]

    def steps_above(self, level: Optional[int]) -> List[MigrationStep]:
        """Steps with a target level above `level`, lowest first"""
        floor = level or 0
        return [self._steps[target] for target in sorted(self._steps) if target > floor]

    def __len__(self) -> int:
        return len(self._steps)


def default_registry() -> MigrationRegistry:
    from coffeebot.migrations.versions import ALL_STEPS

    return MigrationRegistry(ALL_STEPS)
