"""Headless runner: start a session, watch the foreground, print the summary."""

import argparse
import threading

from .config import APP_TITLE, DEFAULT_DURATION_SEC, TICK_INTERVAL_SEC
from .errors import FocusError
from .logging_setup import setup_logger
from .session import FocusSession
from .timer import snap_duration
from .tracker import ViolationTracker
from .utils import format_hms, seconds_to_mmss


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="focus_keeper", description=f"{APP_TITLE}: stay off blocked apps and sites.")
    parser.add_argument(
        "--minutes",
        type=float,
        default=DEFAULT_DURATION_SEC / 60,
        help="session length in minutes (snapped to whole minutes)",
    )
    parser.add_argument("--block", action="append", default=[], metavar="APP", help="blocked app name (repeatable)")
    parser.add_argument(
        "--block-site", action="append", default=[], metavar="DOMAIN", help="blocked domain (repeatable)"
    )
    parser.add_argument("--tick", type=float, default=TICK_INTERVAL_SEC, help=argparse.SUPPRESS)
    parser.add_argument("--verbose", action="store_true", help="also log to the console")
    return parser


def format_summary(session: FocusSession) -> str:
    lines = [
        f"Session {session.state.value}",
        f"  Duration:    {format_hms(session.actual_duration_sec)} of {format_hms(session.planned_duration_sec)}",
        f"  Focus score: {session.score}",
        f"  Violations:  {session.violation_count}",
        f"  Dismissals:  {session.total_dismissals}",
        f"  Distracted:  {seconds_to_mmss(session.total_distracted_sec)}",
        f"  Most distracting: {session.most_distracting_target() or 'None'}",
        f"  Counts toward streak: {'yes' if session.qualifies_for_streak() else 'no'}",
    ]
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_logger(console=args.verbose)

    if not args.block and not args.block_site:
        print("Nothing to block. Pass --block APP and/or --block-site DOMAIN.")
        return 2

    try:
        session = FocusSession.start(
            snap_duration(args.minutes * 60),
            blocked_apps=args.block,
            blocked_domains=args.block_site,
        )
    except FocusError as exc:
        print(f"Cannot start session: {exc}")
        return 2

    done = threading.Event()

    def on_reminder(target: str) -> None:
        print(f"[{tracker.timer.formatted_remaining()}] Back to work, {target} is blocked.")

    def on_complete(_session: FocusSession) -> None:
        done.set()

    tracker = ViolationTracker(
        session,
        on_reminder=on_reminder,
        on_complete=on_complete,
        tick_interval=args.tick,
    )

    print(f"Focus for {format_hms(session.planned_duration_sec)}. Ctrl-C to give up.")
    tracker.start()
    try:
        while not done.wait(0.5):
            if tracker.stopped:
                break
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        tracker.stop(abandon=True)
    tracker.join(timeout=2.0)

    print(format_summary(session))
    return 0 if session.completed else 1
