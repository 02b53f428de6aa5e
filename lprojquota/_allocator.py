from ._exceptions import LPQQueryFailedError
from ._protocols import MaxProjidReader


class ProjidAllocator:
    """Hands out project ids above the filesystem maximum, one at a time.

    The maximum is read once, when the allocator is created, and is then
    tracked locally for the rest of the run.
    """

    def __init__(self, current_max: int) -> None:
        if current_max < 0:
            raise ValueError(f"Invalid maximum project id: {current_max}")
        self._current_max: int = current_max
        self._allocated: list[int] = []

    @classmethod
    def from_reader(cls, reader: MaxProjidReader) -> "ProjidAllocator":
        current_max = reader.max_assigned_projid()
        if current_max is None:
            raise LPQQueryFailedError("Unable to determine maximum projid")
        return cls(current_max)

    def allocate(self) -> int:
        self._current_max += 1
        self._allocated.append(self._current_max)
        return self._current_max

    def peek(self) -> int:
        return self._current_max

    @property
    def allocated(self) -> tuple[int, ...]:
        """Project ids minted so far during this run, in order."""
        return tuple(self._allocated)
