from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, List, Optional, Sequence, Tuple, Union

MediaKey = Union[str, int]
KeyFunc = Callable[[int], MediaKey]


@dataclass(frozen=True)
class MediaGroup:
    key: MediaKey
    start_index: int
    end_index: int
    member_indices: Tuple[int, ...]

    @property
    def size(self) -> int:
        return len(self.member_indices)

    def contains(self, index: int) -> bool:
        return self.start_index <= index <= self.end_index


def index_key(index: int) -> MediaKey:
    return index


def build_media_groups(step_count: int, key_of: Optional[KeyFunc] = None) -> List[MediaGroup]:
    # a key that comes back after a different one starts a new group
    key_of = key_of or index_key
    groups: List[MediaGroup] = []
    for index in range(max(step_count, 0)):
        key = key_of(index)
        last = groups[-1] if groups else None
        if last is None or last.key != key:
            groups.append(MediaGroup(key=key, start_index=index, end_index=index, member_indices=(index,)))
            continue
        groups[-1] = MediaGroup(
            key=last.key,
            start_index=last.start_index,
            end_index=index,
            member_indices=last.member_indices + (index,),
        )
    return groups


@lru_cache(maxsize=32)
def _cached_groups(step_count: int, key_of: KeyFunc) -> Tuple[MediaGroup, ...]:
    return tuple(build_media_groups(step_count, key_of))


def cached_media_groups(step_count: int, key_of: Optional[KeyFunc] = None) -> Tuple[MediaGroup, ...]:
    # Keyed on the key function itself; pass the same callable to hit the cache.
    return _cached_groups(step_count, key_of or index_key)


def keys_from_list(keys: Sequence[MediaKey]) -> KeyFunc:
    frozen = tuple(keys)

    def key_of(index: int) -> MediaKey:
        if index < len(frozen):
            return frozen[index]
        return index

    return key_of


def group_for_step(groups: Sequence[MediaGroup], index: int) -> Optional[MediaGroup]:
    for group in groups:
        if group.contains(index):
            return group
    return None


def group_is_active(group: MediaGroup, active_index: Optional[int]) -> bool:
    if active_index is None:
        return False
    return group.contains(active_index)


def inactive_offset(group: MediaGroup, active_index: Optional[int], distance: float) -> float:
    if active_index is not None and group.end_index < active_index:
        return -distance
    return distance


def media_step_index(group: MediaGroup, active_index: Optional[int]) -> int:
    if active_index is not None and group.contains(active_index):
        return active_index
    return group.start_index
