# tests/helpers.py
import random
from typing import Iterable, List, Optional, Sequence

from santamatch.models.constraints import DrawConfig
from santamatch.models.participants import Participant

NAMES = ["alice", "bob", "charlie", "diana", "edward", "fiona", "george", "hannah", "ivan", "julia"]


def make_people(keys: Iterable[str]) -> List[Participant]:
    return [Participant(key=k, name=k.capitalize(), email=f"{k}@test.com") for k in keys]


def make_config(
    keys: Sequence[str],
    forbidden: Optional[Iterable[Sequence[str]]] = None,
    groups: Optional[Iterable[Iterable[str]]] = None,
    allow_self_assignment: bool = False,
) -> DrawConfig:
    return DrawConfig.build(
        make_people(keys),
        forbidden_pairs=forbidden,
        groups=groups,
        allow_self_assignment=allow_self_assignment,
    )


class NoShuffleRandom(random.Random):
    """Keeps every list in its original order."""

    def shuffle(self, x, *args, **kwargs):
        return None
