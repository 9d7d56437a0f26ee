from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional

from scrollstory.geo import clamp_progress

HIGHLIGHT_EPSILON = 1e-4
JUMP_NUDGE = 0.001

Direction = Literal["enter", "leave", "hold"]
StepStatus = Literal["active", "passed", "upcoming"]


class StepPolicy(str, Enum):
    LINEAR = "linear"
    HIGHLIGHT = "highlight"


@dataclass(frozen=True)
class StepTransition:
    index: int
    previous: Optional[int]
    direction: Direction


def normalize_step_count(steps: float, max_count: Optional[int] = None) -> int:
    if not math.isfinite(steps):
        return 0
    count = math.floor(steps)
    if max_count is not None:
        count = min(max_count, count)
    return max(0, count)


def active_step(progress: float, step_count: int, policy: StepPolicy = StepPolicy.LINEAR) -> Optional[int]:
    if step_count <= 0:
        return None
    clamped = clamp_progress(progress)
    if policy is StepPolicy.HIGHLIGHT:
        index = math.floor(min(clamped, 1 - HIGHLIGHT_EPSILON) * step_count)
    else:
        index = math.floor(clamped * (step_count - 1))
    return max(0, min(step_count - 1, index))


def scroll_target_progress(index: int, step_count: int) -> Optional[float]:
    if step_count <= 0:
        return None
    clamped = max(0, min(index, step_count - 1))
    return (clamped + JUMP_NUDGE) / step_count


def step_status(index: int, active: Optional[int]) -> StepStatus:
    if active is None or index > active:
        return "upcoming"
    if index == active:
        return "active"
    return "passed"


class StepTracker:
    """Remembers the last active step so callers can tell direction."""

    def __init__(self, step_count: int, policy: StepPolicy = StepPolicy.LINEAR) -> None:
        self.step_count = max(0, step_count)
        self.policy = policy
        self._index: Optional[int] = 0 if self.step_count else None

    @property
    def index(self) -> Optional[int]:
        return self._index

    def resize(self, step_count: int) -> None:
        self.step_count = max(0, step_count)
        if not self.step_count:
            self._index = None
            return
        current = self._index or 0
        self._index = min(current, self.step_count - 1)

    def update(self, progress: float) -> Optional[StepTransition]:
        index = active_step(progress, self.step_count, self.policy)
        if index is None:
            return None
        previous = self._index
        if previous is None or index == previous:
            direction: Direction = "hold"
        elif index > previous:
            direction = "enter"
        else:
            direction = "leave"
        self._index = index
        return StepTransition(index=index, previous=previous, direction=direction)
