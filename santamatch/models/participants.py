import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

# Simple, pragmatic email pattern (not perfect RFC5322)
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
# ids end up in file names
UNSAFE_KEY_RE = re.compile(r"[\\/\x00]")


@dataclass(frozen=True)
class Participant:
    key: str
    name: str
    email: Optional[str] = None


def collect_participants_or_raise(records: Iterable[Mapping[str, Any]]) -> List[Participant]:
    """
    Turns raw participant records ({"id", "name", "email"}) into Participants.

    Returns the participants in input order.
    Raises ValueError for missing/duplicate ids or invalid emails.

    Emails are OPTIONAL per participant. We only validate format for those
    provided. A missing name falls back to the id.
    """
    people: List[Participant] = []
    seen: Dict[str, int] = {}

    for i, rec in enumerate(records, start=1):
        if not isinstance(rec, Mapping):
            raise ValueError(f"Participant #{i} must be an object with at least an 'id'.")
        key = str(rec.get("id") or "").strip()
        if not key:
            raise ValueError(f"Participant #{i} has no id (empty values are not allowed).")
        if not is_file_safe_key(key):
            raise ValueError(f"Participant id '{key}' cannot contain slashes or be '.' or '..'.")
        if key in seen:
            raise ValueError(f"Every id must be unique (duplicate id '{key}' at #{seen[key]} and #{i}).")
        name = str(rec.get("name") or "").strip() or key
        email = str(rec.get("email") or "").strip()
        if email and not EMAIL_RE.match(email):
            raise ValueError(f"Invalid email address for {name}.")
        seen[key] = i
        people.append(Participant(key=key, name=name, email=email or None))

    return people


def is_file_safe_key(key: str) -> bool:
    return bool(key) and key not in {".", ".."} and not UNSAFE_KEY_RE.search(key)


def participants_by_key(participants: Iterable[Participant]) -> Dict[str, Participant]:
    return {p.key: p for p in participants}
