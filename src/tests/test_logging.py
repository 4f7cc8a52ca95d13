import json

import pytest
from loguru import logger

from opsgate.logging import LogConfig, configure_logging, get_logger, setup_logging
from opsgate.logging.setup import resolve_environment


@pytest.fixture(autouse=True)
def _reset_sinks():
    yield
    logger.remove()


def test_json_logging(capsys):
    configure_logging(LogConfig(level="info", json_logs=True, colorize=False))
    log = get_logger("opsgate.test")
    log.bind(limiter="auth").info("hello")

    line = capsys.readouterr().out.strip().splitlines()[-1]
    data = json.loads(line)
    assert data["message"] == "hello"
    assert data["level"] == "INFO"
    assert data["logger"] == "opsgate.test"
    assert data["extra"] == {"limiter": "auth"}


def test_level_filters_records(capsys):
    configure_logging(LogConfig(level="WARNING", json_logs=True))
    logger.info("quiet")
    logger.warning("loud")

    lines = capsys.readouterr().out.strip().splitlines()
    assert [json.loads(line)["message"] for line in lines] == ["loud"]


def test_environment_defaults():
    config = configure_logging(environment="test")
    assert config.level == "WARNING"
    assert config.json_logs is False
    assert configure_logging({"level": "debug", "log_dir": None}, environment="prod").json_logs is True


@pytest.mark.parametrize(
    "name,expected",
    [("dev", "development"), ("production", "production"), ("staging", "development")],
)
def test_resolve_environment(name, expected):
    assert resolve_environment(name) == expected


def test_resolve_environment_reads_app_env():
    assert resolve_environment() == "testing"


def test_setup_logging_force_reconfigure():
    first = setup_logging(LogConfig(level="ERROR", console=False), force_reconfigure=True)
    assert setup_logging(LogConfig(level="DEBUG")) is first
    second = setup_logging(LogConfig(level="DEBUG", console=False), force_reconfigure=True)
    assert second.level == "DEBUG"


def test_file_sink(tmp_path):
    configure_logging({"level": "INFO", "console": False, "log_dir": str(tmp_path)})
    logger.info("written to file")
    logger.remove()

    content = (tmp_path / "opsgate.log").read_text()
    assert "written to file" in content


def test_exception_in_json_output(capsys):
    configure_logging(LogConfig(json_logs=True))
    try:
        raise ValueError("bad window")
    except ValueError:
        logger.exception("cleanup failed")

    data = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert data["level"] == "ERROR"
    assert data["exception"] == "ValueError: bad window"
