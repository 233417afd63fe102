import argparse
import dataclasses
import logging
import random
import smtplib
import sys
from typing import List, Optional

from .services.draw import (
    BACKTRACKING, SHUFFLE, InsufficientParticipants, MatchingError,
    find_secret_santa_assignment,
)
from .services.emailer import load_smtp_settings_from_env, send_secret_santa_emails, SMTPSettings
from .services.loader import load_draw_config
from .services.notifications import format_summary, write_notification_files
from .settings import default_output_dir, is_super_secret_mode, load_match_options_from_env, log_level

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NO_ASSIGNMENT = 1
EXIT_BAD_INPUT = 2
EXIT_OUTPUT_FAILED = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="santamatch",
        description="Draw Secret Santa assignments and write one notification per giver.",
    )
    parser.add_argument("draw_file", help="JSON file with participants and constraints")
    parser.add_argument("--output-dir", help="where the assignment files go (default: SANTA_OUTPUT_DIR or ./secret-santa-<year>)")
    parser.add_argument("--strategy", choices=[BACKTRACKING, SHUFFLE], help="matching strategy (default: SANTA_STRATEGY)")
    parser.add_argument("--fallback", action="store_true", help="fall back to backtracking when shuffling gives up")
    parser.add_argument("--no-hall-check", action="store_true", help="skip the Hall feasibility pre-check")
    parser.add_argument("--send-emails", action="store_true", help="email each giver that has an address")
    parser.add_argument("--dry-run", action="store_true", help="with --send-emails: prepare emails without sending them")
    parser.add_argument("--seed", type=int, help="seed the draw (repeatable results)")
    return parser


def run_app(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.dry_run and not args.send_emails:
        parser.error("--dry-run only applies together with --send-emails")
    logging.basicConfig(level=getattr(logging, log_level(), logging.INFO), format="%(levelname)s %(name)s: %(message)s")

    try:
        options = load_match_options_from_env()
        overrides = {}
        if args.strategy:
            overrides["strategy"] = args.strategy
        if args.fallback:
            overrides["fallback_to_backtracking"] = True
        if args.no_hall_check:
            overrides["hall_check"] = False
        if overrides:
            options = dataclasses.replace(options, **overrides)
        logger.debug("Match options: %s", options)
        draw = load_draw_config(args.draw_file)
    except (OSError, ValueError, RuntimeError) as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT

    rng = random.Random(args.seed) if args.seed is not None else None
    try:
        assignment = find_secret_santa_assignment(draw.config, options, rng=rng)
    except InsufficientParticipants as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT
    except MatchingError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        print("Try relaxing some constraints or adding more people.", file=sys.stderr)
        return EXIT_NO_ASSIGNMENT

    participants = draw.config.participants
    if is_super_secret_mode():
        print("🎄 The assignment is made. Super secret mode: not showing it.")
    else:
        print("🎄 Secret Santa Assignments 🎄")
        print("=============================")
        print(format_summary(assignment, participants))
        print()

    output_dir = args.output_dir or default_output_dir()
    try:
        written = write_notification_files(assignment, participants, output_dir, draw.details)
    except OSError as e:
        print(f"❌ Could not write the assignment files: {e}", file=sys.stderr)
        return EXIT_OUTPUT_FAILED
    except ValueError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT
    for path in written[:-1]:
        print(f"Created assignment file: {path}")
    print(f"\nMaster file created (delete this after emails are sent): {written[-1]}")

    if args.send_emails:
        try:
            settings: SMTPSettings = load_smtp_settings_from_env()
        except RuntimeError as e:
            print(f"❌ SMTP configuration error: {e}", file=sys.stderr)
            return EXIT_BAD_INPUT
        try:
            sent = send_secret_santa_emails(
                assignment=assignment,
                participants=participants,
                settings=settings,
                details=draw.details,
                dry_run=args.dry_run,
            )
        except (OSError, smtplib.SMTPException) as e:
            print(f"❌ Sending failed: {e}", file=sys.stderr)
            print("The assignment files are written; you can attach them by hand.", file=sys.stderr)
            return EXIT_OUTPUT_FAILED
        verb = "Prepared" if args.dry_run else "Sent"
        print(f"{verb} emails for {len(sent)} participants with an email address.")

    print("\n✅ All files created! You can now attach the .txt files to emails.")
    return EXIT_OK


def main():
    sys.exit(run_app())
