import itertools
import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..models.constraints import Assignment, DrawConfig
from .constraints import ConstraintEvaluator

logger = logging.getLogger(__name__)

BACKTRACKING = "backtracking"
SHUFFLE = "shuffle"
STRATEGIES = (BACKTRACKING, SHUFFLE)


class MatchingError(RuntimeError):
    pass


class InsufficientParticipants(MatchingError):
    """Fewer than two participants: a configuration error, no search is attempted."""


class InfeasibleConstraints(MatchingError):
    """No valid assignment can exist; `givers` is the subset that proves it."""

    def __init__(self, message: str, givers: Sequence[str] = ()):
        super().__init__(message)
        self.givers = tuple(givers)


class SearchExhausted(MatchingError):
    """
    The search ended without an assignment.
    `proven` is True only after a complete backtracking search; a spent
    shuffle budget or step bound is not a proof that no assignment exists.
    """

    def __init__(self, message: str, proven: bool):
        super().__init__(message)
        self.proven = proven


@dataclass(frozen=True)
class MatchOptions:
    strategy: str = BACKTRACKING
    hall_check: bool = True
    # Hall's check enumerates subsets, so it only runs for small groups
    hall_check_max_participants: int = 10
    hall_check_max_subset: int = 4
    max_attempts: int = 1000
    fallback_to_backtracking: bool = False
    max_steps: Optional[int] = None

    def __post_init__(self):
        if self.strategy not in STRATEGIES:
            raise ValueError(f"Unknown strategy '{self.strategy}' (expected one of: {', '.join(STRATEGIES)}).")
        if self.hall_check_max_subset < 1 or self.hall_check_max_participants < 0:
            raise ValueError("Hall check limits must be positive.")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        if self.max_steps is not None and self.max_steps < 1:
            raise ValueError("max_steps must be at least 1 when set.")


def find_hall_violation(
    config: DrawConfig,
    max_subset: int = 4,
    evaluator: Optional[ConstraintEvaluator] = None,
) -> Optional[Tuple[str, ...]]:
    """
    Checks Hall's condition for every subset of givers of size
    1..min(max_subset, n // 2): the givers together must be able to reach at
    least as many receivers as there are givers.

    Returns the first violating subset, or None when every checked subset passes.
    Passing is not a proof of feasibility: larger subsets are never checked.
    """
    evaluator = evaluator or ConstraintEvaluator(config)
    keys = config.keys
    reach = {g: set(evaluator.valid_receivers(g)) for g in keys}
    for size in range(1, min(max_subset, len(keys) // 2) + 1):
        for givers in itertools.combinations(keys, size):
            receivers = set().union(*(reach[g] for g in givers))
            if len(receivers) < size:
                return givers
    return None


def _candidates_or_raise(config: DrawConfig, evaluator: ConstraintEvaluator) -> Dict[str, List[str]]:
    candidates = {g: evaluator.valid_receivers(g) for g in config.keys}
    stuck = [g for g, options in candidates.items() if not options]
    if stuck:
        raise InfeasibleConstraints(
            f"No valid assignment: {', '.join(stuck)} cannot give to anyone.", givers=stuck
        )
    return candidates


def _backtracking_search(
    config: DrawConfig,
    evaluator: ConstraintEvaluator,
    options: MatchOptions,
    rng: random.Random,
) -> Assignment:
    people = config.keys
    candidates = _candidates_or_raise(config, evaluator)

    if options.hall_check and len(people) <= options.hall_check_max_participants:
        violation = find_hall_violation(config, options.hall_check_max_subset, evaluator)
        if violation:
            raise InfeasibleConstraints(
                f"No possible assignment exists: {', '.join(violation)} "
                f"can only give to fewer than {len(violation)} people.",
                givers=violation,
            )
    elif options.hall_check:
        logger.debug("Skipping Hall check for %d participants (limit %d)",
                     len(people), options.hall_check_max_participants)

    receivers_available = set(people)
    assignment: Dict[str, str] = {}
    # receiver -> givers allowed to draw them
    drawn_by: Dict[str, List[str]] = {r: [] for r in people}
    for g in people:
        for r in candidates[g]:
            drawn_by[r].append(g)
    steps = 0

    def backtrack() -> bool:
        nonlocal steps
        free_givers = [g for g in people if g not in assignment]
        if not free_givers:
            return True
        # every open receiver still needs someone left who may draw them
        for r in receivers_available:
            if not any(g not in assignment for g in drawn_by[r]):
                return False
        # most constrained giver first; shuffling first breaks ties randomly
        rng.shuffle(free_givers)
        giver, options_here = min(
            ((g, [r for r in candidates[g] if r in receivers_available]) for g in free_givers),
            key=lambda item: len(item[1]),
        )
        # fresh shuffle at every branch point
        rng.shuffle(options_here)
        for r in options_here:
            steps += 1
            if options.max_steps is not None and steps > options.max_steps:
                raise SearchExhausted(
                    f"Gave up after {options.max_steps} search steps; an assignment may still exist.",
                    proven=False,
                )
            assignment[giver] = r
            receivers_available.remove(r)
            if backtrack():
                return True
            receivers_available.add(r)
            del assignment[giver]
        return False

    if not backtrack():
        raise SearchExhausted("Unable to generate valid assignment: every option was tried.", proven=True)

    logger.debug("Backtracking found an assignment after %d steps", steps)
    return Assignment(tuple((g, assignment[g]) for g in people))


def _shuffle_search(
    config: DrawConfig,
    evaluator: ConstraintEvaluator,
    options: MatchOptions,
    rng: random.Random,
) -> Assignment:
    givers = config.keys
    _candidates_or_raise(config, evaluator)

    receivers = givers[:]
    for attempt in range(1, options.max_attempts + 1):
        rng.shuffle(receivers)
        pairs = tuple(zip(givers, receivers))
        if all(evaluator.is_valid_pairing(g, r) for g, r in pairs):
            logger.debug("Shuffle found an assignment on attempt %d", attempt)
            return Assignment(pairs)

    raise SearchExhausted(
        f"Could not find valid assignment after {options.max_attempts} attempts "
        "(this does not prove that none exists).",
        proven=False,
    )


def find_secret_santa_assignment(
    config: DrawConfig,
    options: Optional[MatchOptions] = None,
    rng: Optional[random.Random] = None,
) -> Assignment:
    """
    Draws one complete giver -> receiver assignment for `config`.

    Strategies:
      - "backtracking": Hall pre-check (small groups only), then a complete
        randomized backtracking search that fills the most constrained giver
        first and prunes branches leaving a receiver nobody can draw. Finds an
        assignment whenever one exists.
      - "shuffle": shuffle-and-validate up to `max_attempts` times. Failure is
        probabilistic; set `fallback_to_backtracking` for a definitive answer.

    Raises InsufficientParticipants, InfeasibleConstraints or SearchExhausted.
    Never returns a partial assignment.
    """
    options = options or MatchOptions()
    rng = rng or random.Random()

    n = len(config.participants)
    if n < 2:
        raise InsufficientParticipants(f"Need at least 2 people for Secret Santa (got {n}).")

    evaluator = ConstraintEvaluator(config)
    if options.strategy == SHUFFLE:
        try:
            result = _shuffle_search(config, evaluator, options, rng)
        except SearchExhausted as e:
            if not options.fallback_to_backtracking:
                raise
            logger.warning("%s Falling back to backtracking.", e)
            result = _backtracking_search(config, evaluator, options, rng)
    else:
        result = _backtracking_search(config, evaluator, options, rng)

    logger.info("Drew an assignment for %d participants (%s)", n, options.strategy)
    return result
