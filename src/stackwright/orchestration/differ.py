"""Structural comparison of live and desired stack state."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Sequence


class DiffKind(Enum):
    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"


@dataclass(frozen=True)
class Difference:
    """One structural difference; ``old`` is live, ``new`` is desired."""

    kind: DiffKind
    path: tuple[Any, ...]
    old: Any = None
    new: Any = None

    @property
    def dotted_path(self) -> str:
        parts: list[str] = []
        for part in self.path:
            if isinstance(part, int):
                parts.append(f"[{part}]")
            else:
                parts.append(f".{part}" if parts else str(part))
        return "".join(parts)


@dataclass(frozen=True)
class StackSnapshot:
    """The parts of a stack that decide whether it needs applying.

    ``template`` is None when the stack does not exist.
    """

    parameters: Mapping[str, str] = field(default_factory=dict)
    template: Mapping[str, Any] | None = None

    def as_document(self) -> dict[str, Any]:
        return {"parameters": dict(self.parameters), "template": self.template}


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


class StateDiffer:
    """Deep diff of (parameters, template) pairs.

    Values on only one side are reported as added/removed at the highest
    path where they diverge; values on both sides that differ are reported
    as a single change. Lists are compared element by element.
    """

    def diff(self, live: StackSnapshot, desired: StackSnapshot) -> List[Difference] | None:
        """Return the differences, or None when the two are identical."""
        differences: List[Difference] = []
        self._compare(live.as_document(), desired.as_document(), (), differences)
        return differences or None

    def _compare(self, old: Any, new: Any, path: tuple[Any, ...], out: List[Difference]) -> None:
        if old is None and new is not None:
            out.append(Difference(DiffKind.ADDED, path, new=new))
        elif new is None and old is not None:
            out.append(Difference(DiffKind.REMOVED, path, old=old))
        elif isinstance(old, Mapping) and isinstance(new, Mapping):
            for key in old:
                if key not in new:
                    out.append(Difference(DiffKind.REMOVED, path + (key,), old=old[key]))
                else:
                    self._compare(old[key], new[key], path + (key,), out)
            for key in new:
                if key not in old:
                    out.append(Difference(DiffKind.ADDED, path + (key,), new=new[key]))
        elif _is_sequence(old) and _is_sequence(new):
            for index in range(min(len(old), len(new))):
                self._compare(old[index], new[index], path + (index,), out)
            for index in range(len(new), len(old)):
                out.append(Difference(DiffKind.REMOVED, path + (index,), old=old[index]))
            for index in range(len(old), len(new)):
                out.append(Difference(DiffKind.ADDED, path + (index,), new=new[index]))
        elif type(old) is not type(new) or old != new:
            out.append(Difference(DiffKind.CHANGED, path, old=old, new=new))
