from typing import Iterable, List, Tuple

from ..models.constraints import DrawConfig


class ConstraintEvaluator:
    """
    Decides whether a single (giver, receiver) edge is allowed:
      - no self-assignment (unless the config allows it)
      - no forbidden pair, checked in both directions
      - no two members of the same group
    Groups only separate distinct people: with self-assignment allowed, a
    group member may still draw themselves.
    """

    def __init__(self, config: DrawConfig):
        self.config = config
        self._forbidden = config.forbidden_pairs
        self._groups = config.groups

    def is_valid_pairing(self, giver_key: str, receiver_key: str) -> bool:
        if giver_key == receiver_key:
            if not self.config.allow_self_assignment:
                return False
            return (giver_key, giver_key) not in self._forbidden
        if (giver_key, receiver_key) in self._forbidden or (receiver_key, giver_key) in self._forbidden:
            return False
        for group in self._groups:
            if giver_key in group and receiver_key in group:
                return False
        return True

    def valid_receivers(self, giver_key: str) -> List[str]:
        return [k for k in self.config.keys if self.is_valid_pairing(giver_key, k)]

    def violations(self, pairs: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
        return [(g, r) for g, r in pairs if not self.is_valid_pairing(g, r)]
