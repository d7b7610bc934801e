import logging

from calagator.config import get_settings
from calagator.logging_config import configure_logging, get_logger


def test_console_only_without_log_dir(monkeypatch):
    monkeypatch.setattr(get_settings(), "LOG_DIR", "")
    config = configure_logging()

    assert list(config["handlers"]) == ["console"]
    assert config["loggers"]["calagator"]["handlers"] == ["console"]


def test_json_file_handler_in_log_dir(monkeypatch, tmp_path):
    monkeypatch.setattr(get_settings(), "LOG_DIR", str(tmp_path / "logs"))
    config = configure_logging()

    assert (tmp_path / "logs").is_dir()
    assert config["handlers"]["file"]["filename"] == str(tmp_path / "logs" / "calagator.log")
    assert config["handlers"]["file"]["formatter"] == "json"
    assert config["loggers"]["calagator"]["handlers"] == ["console", "file"]


def test_verbose_lowers_console_level(monkeypatch):
    monkeypatch.setattr(get_settings(), "LOG_DIR", "")
    config = configure_logging(verbose=True)

    assert config["handlers"]["console"]["level"] == "DEBUG"
    assert config["loggers"]["calagator"]["level"] == "DEBUG"


def test_get_logger_namespace():
    assert get_logger("services.duplicates") is logging.getLogger("calagator.services.duplicates")
