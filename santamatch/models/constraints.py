from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence, Tuple

from .participants import Participant

logger = logging.getLogger(__name__)

# (giver key, receiver key); blocks both directions
ForbiddenPair = Tuple[str, str]
Group = FrozenSet[str]


@dataclass(frozen=True)
class DrawConfig:
    """
    Everything one matching call needs, read-only.
    Build it with `DrawConfig.build(...)` so inputs get normalised and checked.
    """
    participants: Tuple[Participant, ...]
    forbidden_pairs: FrozenSet[ForbiddenPair] = frozenset()
    groups: Tuple[Group, ...] = ()
    allow_self_assignment: bool = False

    @classmethod
    def build(
        cls,
        participants: Sequence[Participant],
        forbidden_pairs: Optional[Iterable[Sequence[str]]] = None,
        groups: Optional[Iterable[Iterable[str]]] = None,
        allow_self_assignment: bool = False,
    ) -> "DrawConfig":
        keys = [p.key for p in participants]
        if len(set(keys)) != len(keys):
            raise ValueError("Every participant key must be unique (duplicate keys found).")

        pairs = set()
        for pair in forbidden_pairs or ():
            if len(pair) != 2:
                raise ValueError(f"A forbidden pair needs exactly two keys, got {list(pair)!r}.")
            giver, receiver = pair
            pairs.add((str(giver), str(receiver)))
        norm_groups = tuple(frozenset(str(k) for k in g) for g in (groups or ()))

        known = set(keys)
        for giver, receiver in sorted(pairs):
            unknown = {giver, receiver} - known
            if unknown:
                logger.warning("Forbidden pair (%s, %s) names unknown participant(s): %s",
                               giver, receiver, ", ".join(sorted(unknown)))
        for i, g in enumerate(norm_groups, start=1):
            unknown = g - known
            if unknown:
                logger.warning("Group #%d names unknown participant(s): %s", i, ", ".join(sorted(unknown)))

        return cls(
            participants=tuple(participants),
            forbidden_pairs=frozenset(pairs),
            groups=norm_groups,
            allow_self_assignment=allow_self_assignment,
        )

    @property
    def keys(self) -> List[str]:
        return [p.key for p in self.participants]


@dataclass(frozen=True)
class Assignment:
    """Complete giver -> receiver mapping, in participant order."""
    pairs: Tuple[Tuple[str, str], ...]
    _index: Dict[str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        givers = [g for g, _ in self.pairs]
        receivers = [r for _, r in self.pairs]
        if len(set(givers)) != len(givers) or set(givers) != set(receivers):
            raise ValueError("An assignment must be a permutation of the participants.")
        object.__setattr__(self, "_index", dict(self.pairs))

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)

    def receiver_for(self, giver_key: str) -> str:
        return self._index[giver_key]

    @property
    def givers(self) -> List[str]:
        return [g for g, _ in self.pairs]

    @property
    def receivers(self) -> List[str]:
        return [r for _, r in self.pairs]

    def as_dict(self) -> Dict[str, str]:
        return dict(self._index)
