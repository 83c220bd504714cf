from collections import OrderedDict

import sentry_core

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import List
    from typing import TypedDict

    FlagData = TypedDict("FlagData", {"flag": str, "result": bool})


DEFAULT_FLAG_CAPACITY = 100


class FlagBuffer:
    """Keeps the most recently evaluated flags. Setting a flag again moves
    it to the end, the oldest flag is evicted once the buffer is full."""

    def __init__(self, capacity: int = DEFAULT_FLAG_CAPACITY) -> None:
        self.capacity = capacity
        self.buffer: "OrderedDict[str, bool]" = OrderedDict()

    def __copy__(self) -> "FlagBuffer":
        rv = FlagBuffer(self.capacity)
        rv.buffer = self.buffer.copy()
        return rv

    def __len__(self) -> int:
        return len(self.buffer)

    def clear(self) -> None:
        self.buffer = OrderedDict()

    def get(self) -> "List[FlagData]":
        return [{"flag": key, "result": value} for key, value in self.buffer.items()]

    def set(self, flag: str, result: bool) -> None:
        self.buffer.pop(flag, None)
        if len(self.buffer) >= self.capacity:
            self.buffer.popitem(last=False)
        self.buffer[flag] = result


def add_feature_flag(flag: str, result: bool) -> None:
    """
    Records a flag and its value to be sent on subsequent error events.
    We recommend you do this on flag evaluations. Flags are buffered per scope.
    """
    sentry_core.get_current_hub().get_scope().add_feature_flag(flag, result)
