from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional

from scrollstory.geo import clamp_progress
from scrollstory.groups import MediaGroup

logger = logging.getLogger(__name__)

DEFAULT_ACTIVATION_THRESHOLD = 0.35


class GroupProgressPolicy(str, Enum):
    SHARED = "shared"
    PER_MEMBER = "per_member"


def shared_group_progress(overall: float, group: MediaGroup, step_count: int) -> float:
    if step_count <= 0:
        return 0.0
    scaled = clamp_progress(overall) * step_count
    group_size = max(group.size, 1)
    local = (scaled - group.start_index) / group_size
    return clamp_progress(local)


def member_group_progress(
    group: MediaGroup,
    member_progress: Mapping[int, float],
    fallback: float = 0.0,
) -> float:
    # members that have not started are skipped, except the first
    group_size = group.size or 1
    value = 0.0
    for offset, step_index in enumerate(group.member_indices):
        raw = clamp_progress(member_progress.get(step_index, fallback))
        if offset > 0 and raw <= 0:
            continue
        scaled = (offset + raw) / group_size
        if scaled > value:
            value = scaled
    return value


class MemberProgressBoard:
    """Latest progress reported by each step's own observer."""

    def __init__(
        self,
        activation_threshold: float = DEFAULT_ACTIVATION_THRESHOLD,
        fallback: float = 0.0,
    ) -> None:
        self.activation_threshold = activation_threshold
        self.fallback = fallback
        self._progress: Dict[int, float] = {}
        self._active_index: int = 0

    @property
    def active_index(self) -> int:
        return self._active_index

    def get(self, index: int) -> float:
        return self._progress.get(index, self.fallback)

    def report(self, index: int, value: float) -> bool:
        clamped = clamp_progress(value)
        self._progress[index] = clamped
        if clamped > self.activation_threshold:
            if index != self._active_index:
                logger.debug("step %s activated at %.3f", index, clamped)
            self._active_index = index
            return True
        return False

    def forget(self, indices: Iterable[int]) -> None:
        for index in indices:
            self._progress.pop(index, None)

    def snapshot(self) -> Dict[int, float]:
        return dict(self._progress)

    def group_progress(self, group: MediaGroup) -> float:
        return member_group_progress(group, self._progress, self.fallback)


def group_progress(
    policy: GroupProgressPolicy,
    group: MediaGroup,
    overall: float = 0.0,
    step_count: int = 0,
    member_progress: Optional[Mapping[int, float]] = None,
) -> float:
    if policy is GroupProgressPolicy.PER_MEMBER:
        return member_group_progress(group, member_progress or {})
    return shared_group_progress(overall, group, step_count)
