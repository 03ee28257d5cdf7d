from sprof.types import Func


class Stack:
    """
    Immutable call path from the traversal root to the current function.

    Extending a stack returns a new one; the receiver is left untouched, so
    sibling branches of the walk never see each other's frames.
    """
    __slots__ = ("_frames", "_seen")

    def __init__(self, frames: tuple[Func, ...] = (), seen: frozenset[Func] = frozenset()):
        self._frames = frames
        self._seen = seen

    def add(self, fn: Func) -> "Stack":
        return Stack(self._frames + (fn,), self._seen | {fn})

    @property
    def frames(self) -> tuple[Func, ...]:
        return self._frames

    def __contains__(self, fn: Func) -> bool:
        return fn in self._seen

    def __len__(self) -> int:
        return len(self._frames)

    def __repr__(self) -> str:
        return "Stack(" + " -> ".join(str(f) for f in self._frames) + ")"
