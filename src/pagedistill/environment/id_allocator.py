"""Identifier allocation for one distillation pass."""

from dataclasses import dataclass
from typing import List, Tuple


@dataclass(frozen=True)
class IdAllocator:
    """
    Immutable identifier counter.

    The allocator is a value: every allocation returns the issued id(s)
    together with a new allocator. The distiller threads it through the
    frame loop, so ids follow frame enumeration order no matter in which
    order frames finished evaluating.
    """

    next_id: int = 1

    def __post_init__(self):
        if self.next_id < 1:
            raise ValueError(f"next_id must be >= 1, got {self.next_id}")

    def allocate(self) -> Tuple[int, "IdAllocator"]:
        return self.next_id, IdAllocator(self.next_id + 1)

    def allocate_many(self, count: int) -> Tuple[List[int], "IdAllocator"]:
        """Contiguous ids for one frame's retained elements."""
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        ids: List[int] = []
        allocator = self
        for _ in range(count):
            distill_id, allocator = allocator.allocate()
            ids.append(distill_id)
        return ids, allocator

    @property
    def issued(self) -> int:
        """Number of ids handed out so far in this pass."""
        return self.next_id - 1
