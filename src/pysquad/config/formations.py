"""Formation definitions for starting lineups."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Tuple

from pysquad.errors import InvalidConfiguration
from pysquad.models import POSITION_ORDER, PositionGroup

STARTING_XI_SIZE = 11


@dataclass(frozen=True)
class Formation:
    code: str
    name: str
    counts: Mapping[PositionGroup, int]

    def __post_init__(self) -> None:
        counts = {group: int(self.counts.get(group, 0)) for group in POSITION_ORDER}
        if any(count < 0 for count in counts.values()):
            raise InvalidConfiguration(f"Formation {self.code!r} has a negative slot count")
        total = sum(counts.values())
        if total != STARTING_XI_SIZE:
            raise InvalidConfiguration(
                f"Formation {self.code!r} fills {total} slots, expected {STARTING_XI_SIZE}"
            )
        object.__setattr__(self, "counts", counts)

    def count(self, group: PositionGroup) -> int:
        return self.counts.get(group, 0)

    @property
    def slot_order(self) -> Tuple[str, ...]:
        """Slot labels in lineup order, e.g. ``("GK1", "DEF1", ...)``."""

        labels = []
        for group in POSITION_ORDER:
            labels.extend(f"{group.value}{idx}" for idx in range(1, self.count(group) + 1))
        return tuple(labels)


def _formation(code: str, name: str, defenders: int, midfielders: int, forwards: int) -> Formation:
    return Formation(
        code=code,
        name=name,
        counts={
            PositionGroup.GOALKEEPER: 1,
            PositionGroup.DEFENDER: defenders,
            PositionGroup.MIDFIELDER: midfielders,
            PositionGroup.FORWARD: forwards,
        },
    )


_FORMATIONS: Dict[str, Formation] = {
    "4-4-2": _formation("4-4-2", "Balanced", 4, 4, 2),
    "4-3-3": _formation("4-3-3", "Offensive", 4, 3, 3),
    "5-3-2": _formation("5-3-2", "Defensive", 5, 3, 2),
    "3-4-3": _formation("3-4-3", "Ultra attacking", 3, 4, 3),
    "5-4-1": _formation("5-4-1", "Ultra defensive", 5, 4, 1),
    "4-5-1": _formation("4-5-1", "Compact", 4, 5, 1),
}


def iter_formations() -> Iterable[Formation]:
    """Return an iterator of all registered formations."""

    return _FORMATIONS.values()


def parse_formation(code: str) -> Formation:
    """Build a formation from a dashed code such as ``4-2-3-1``.

    The first line is the defence, the last line the attack and any lines in
    between count as midfield. One goalkeeper is always implied.
    """

    parts = [part.strip() for part in code.split("-")]
    if len(parts) < 3 or not all(part.isdigit() for part in parts):
        raise InvalidConfiguration(f"Formation code must look like '4-4-2', got {code!r}")
    lines = [int(part) for part in parts]
    return _formation(code, code, lines[0], sum(lines[1:-1]), lines[-1])


def get_formation(code: str) -> Formation:
    """Fetch a registered formation, raising KeyError if missing."""

    key = code.strip()
    if key not in _FORMATIONS:
        raise KeyError(f"No formation registered for {code!r}")
    return _FORMATIONS[key]


def resolve_formation(code: str) -> Formation:
    """Return the registered formation for ``code`` or parse it ad hoc."""

    try:
        return get_formation(code)
    except KeyError:
        return parse_formation(code)
