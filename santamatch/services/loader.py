import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Union

from ..models.constraints import DrawConfig
from ..models.participants import collect_participants_or_raise

logger = logging.getLogger(__name__)

DEFAULT_DETAILS = "- Budget: $25\n- Date: December 25th"


@dataclass(frozen=True)
class DrawFile:
    config: DrawConfig
    details: str = DEFAULT_DETAILS


def parse_draw_data(data: Mapping[str, Any]) -> DrawFile:
    """
    Builds a DrawFile from an already decoded draw document:

      {"participants": [{"id", "name", "email"}, ...],
       "constraints": {"illegal_pairings": [[giver, receiver], ...],
                       "groups": [[key, ...], ...]},
       "allow_self_assignment": false,
       "details": "free text for the notifications"}
    """
    if not isinstance(data, Mapping):
        raise ValueError("A draw file must contain a JSON object.")

    participants = collect_participants_or_raise(data.get("participants") or [])

    constraints = data.get("constraints")
    if constraints is None:
        constraints = {}
    if not isinstance(constraints, Mapping):
        raise ValueError("'constraints' must be an object.")
    pairs = constraints.get("illegal_pairings") or []
    groups = constraints.get("groups") or []
    if not isinstance(pairs, list) or not all(isinstance(p, list) for p in pairs):
        raise ValueError("'illegal_pairings' must be a list of [giver, receiver] lists.")
    if not isinstance(groups, list) or not all(isinstance(g, list) for g in groups):
        raise ValueError("'groups' must be a list of lists of ids.")

    allow_self = data.get("allow_self_assignment", False)
    if not isinstance(allow_self, bool):
        raise ValueError("'allow_self_assignment' must be true or false.")

    config = DrawConfig.build(
        participants,
        forbidden_pairs=pairs,
        groups=groups,
        allow_self_assignment=allow_self,
    )
    details = str(data.get("details") or DEFAULT_DETAILS).strip("\n")
    return DrawFile(config=config, details=details)


def load_draw_config(path: Union[str, Path]) -> DrawFile:
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"{path} is not valid JSON: {e}") from e
    draw = parse_draw_data(data)
    logger.info("Loaded %d participants, %d forbidden pairs and %d groups from %s",
                len(draw.config.participants), len(draw.config.forbidden_pairs),
                len(draw.config.groups), path)
    return draw
