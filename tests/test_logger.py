from datetime import date
from pathlib import Path

import pytest

from gtsnet.config import AppConfig
from gtsnet.logger import (
    LogLevel,
    Logger,
    init_logger,
    init_logger_default,
    log_file_name,
    parse_log_level,
)


def _emit_all(logger):
    logger.info("Info")
    logger.debug("Debug")
    logger.error("Error")
    logger.fatal("Fatal")
    logger.warning("Warning")
    logger.trace("trace")


def test_new_log(capsys):
    logger = init_logger("DEBUG")
    assert logger.level == LogLevel.DEBUG
    _emit_all(logger)
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 6
    assert "[info]" in lines[0] and lines[0].endswith(" Info")
    assert "[debug]" in lines[1] and lines[1].endswith(" Debug")
    assert "[error]" in lines[2]
    assert "[fatal]" in lines[3]
    assert "[warning]" in lines[4]
    assert "[trace]" in lines[5] and lines[5].endswith(" trace")


def test_caller_is_reported(capsys):
    Logger("info").info("where")
    out = capsys.readouterr().out
    assert "[test_logger.py:" in out
    assert "test_caller_is_reported" in out


def test_level_filters_lower_messages(capsys):
    logger = init_logger("error")
    _emit_all(logger)
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 2
    assert "[error]" in lines[0]
    assert "[fatal]" in lines[1]
    assert not logger.enabled(LogLevel.WARNING)
    assert logger.enabled(LogLevel.FATAL)


def test_parse_log_level_is_case_insensitive():
    assert parse_log_level("WARNING") is LogLevel.WARNING
    assert parse_log_level("Trace") is LogLevel.TRACE


@pytest.mark.parametrize("text", ["verbose", "unknown", ""])
def test_invalid_level_raises(text):
    with pytest.raises(ValueError):
        parse_log_level(text)
    with pytest.raises(ValueError):
        init_logger(text)


def test_log_file_name_layout(tmp_path):
    name = log_file_name(tmp_path, "log", date(2023, 5, 19))
    assert name == str(tmp_path / "2023-05" / "2023-05-19-log")
    assert (tmp_path / "2023-05").is_dir()


def test_messages_are_appended_to_file(tmp_path, capsys):
    logger = init_logger("info", str(tmp_path))
    logger.info("first entry")
    logger.debug("hidden")
    logger.error("second entry")
    content = Path(logger.file_name).read_text(encoding="utf-8").splitlines()
    assert len(content) == 2
    assert "[info]" in content[0] and content[0].endswith("first entry")
    assert "[error]" in content[1] and content[1].endswith("second entry")
    assert capsys.readouterr().out.splitlines() == content


def test_new_log_default(tmp_path):
    cfg = AppConfig(log_level="warning", log_path=str(tmp_path))
    logger = init_logger_default(cfg)
    assert logger.level == LogLevel.WARNING
    assert logger.file_name.startswith(str(tmp_path))
    assert logger.file_name.endswith("-log")