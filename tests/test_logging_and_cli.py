import logging
from logging.handlers import RotatingFileHandler

import pytest

from focus_keeper import cli
from focus_keeper.logging_setup import get_logger, setup_logger
from focus_keeper.session import FocusSession
from focus_keeper.utils import format_hms, seconds_to_mmss


@pytest.fixture
def clean_logger():
    logger = get_logger()
    saved = list(logger.handlers)
    logger.handlers.clear()
    yield logger
    for h in logger.handlers:
        h.close()
    logger.handlers[:] = saved


def test_setup_logger_is_idempotent(tmp_path, clean_logger):
    log_file = tmp_path / "logs" / "focus.log"
    first = setup_logger(log_file=str(log_file))
    second = setup_logger(console=True, log_file=str(log_file))
    third = setup_logger(console=True, log_file=str(log_file))

    assert first is second is third
    assert sum(isinstance(h, RotatingFileHandler) for h in first.handlers) == 1
    assert sum(type(h) is logging.StreamHandler for h in first.handlers) == 1

    get_logger("session").info("Violation OPEN target=Discord")
    for h in first.handlers:
        h.flush()
    assert "| INFO | Violation OPEN target=Discord" in log_file.read_text(encoding="utf-8")


def test_child_logger_names():
    assert get_logger().name == "FocusKeeper"
    assert get_logger("tracker").name == "FocusKeeper.tracker"


def test_time_formatting():
    assert seconds_to_mmss(165) == "02:45"
    assert seconds_to_mmss(-4) == "00:00"
    assert format_hms(3723) == "1:02:03"


def test_cli_requires_something_to_block(monkeypatch, capsys):
    monkeypatch.setattr(cli, "setup_logger", lambda **kw: logging.getLogger("test"))
    assert cli.main(["--minutes", "1"]) == 2
    assert "Nothing to block" in capsys.readouterr().out


def test_parser_collects_targets():
    args = cli.build_parser().parse_args(
        ["--minutes", "45", "--block", "Discord", "--block", "Steam", "--block-site", "youtube.com"]
    )
    assert args.minutes == 45
    assert args.block == ["Discord", "Steam"]
    assert args.block_site == ["youtube.com"]


def test_summary_text():
    s = FocusSession(1800, ["Discord"])
    s.start_violation("Discord")
    s.add_violation_duration(165)
    s.record_dismissal()
    s.complete(1800)

    text = cli.format_summary(s)
    assert "Session completed" in text
    assert "Focus score: 91" in text
    assert "Distracted:  02:45" in text
    assert "Most distracting: Discord" in text
    assert "Counts toward streak: yes" in text
