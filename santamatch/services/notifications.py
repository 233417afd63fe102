import logging
from pathlib import Path
from typing import Dict, Iterable, List, Union

from ..models.constraints import Assignment
from ..models.participants import Participant, is_file_safe_key, participants_by_key

logger = logging.getLogger(__name__)

MASTER_FILENAME = "MASTER_ASSIGNMENTS.txt"


def render_notification(giver: Participant, receiver: Participant, details: str) -> str:
    return (
        "🎅 SECRET SANTA ASSIGNMENT 🎅\n\n"
        f"Hello {giver.name}!\n\n"
        "Your Secret Santa assignment is:\n\n"
        f"🎁 **{receiver.name}** 🎁\n\n"
        "Remember, this is a secret! Don't tell anyone who you have.\n\n"
        "Gift exchange details:\n"
        f"{details}\n\n"
        "Happy gifting!"
    )


def _lookup(assignment: Assignment, participants: Iterable[Participant]) -> Dict[str, Participant]:
    people = participants_by_key(participants)
    missing = sorted(set(assignment.givers) - set(people))
    if missing:
        raise ValueError(f"Assignment names unknown participants: {', '.join(missing)}")
    return people


def format_summary(assignment: Assignment, participants: Iterable[Participant]) -> str:
    people = _lookup(assignment, participants)
    return "\n".join(f"{people[g].name} → {people[r].name}" for g, r in assignment)


def format_master(assignment: Assignment, participants: Iterable[Participant]) -> str:
    people = _lookup(assignment, participants)
    lines = []
    for g, r in assignment:
        giver = people[g]
        contact = f" ({giver.email})" if giver.email else ""
        lines.append(f"{giver.name}{contact} → {people[r].name}")
    return "\n".join(lines)


def write_notification_files(
    assignment: Assignment,
    participants: Iterable[Participant],
    output_dir: Union[str, Path],
    details: str,
) -> List[Path]:
    """
    Writes <giver key>_assignment.txt per giver plus MASTER_ASSIGNMENTS.txt.
    Every target is rendered and checked to sit directly inside `output_dir`
    before the first write; I/O errors propagate.
    Returns the written paths, master file last.
    """
    participants = list(participants)
    people = _lookup(assignment, participants)
    out = Path(output_dir)

    rendered = [
        (out / f"{g}_assignment.txt", render_notification(people[g], people[r], details))
        for g, r in assignment
    ]
    rendered.append((out / MASTER_FILENAME, format_master(assignment, participants)))

    unsafe = [g for g in assignment.givers if not is_file_safe_key(g)]
    if unsafe:
        raise ValueError(f"Participant ids cannot be used as file names: {', '.join(unsafe)}")
    root = out.resolve()
    for path, _ in rendered:
        if path.resolve().parent != root:
            raise ValueError(f"{path} would be written outside {out}")

    out.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for path, content in rendered:
        path.write_text(content, encoding="utf-8")
        written.append(path)
        logger.debug("Wrote %s", path)

    logger.info("Created %d assignment files in %s", len(rendered) - 1, out)
    return written
