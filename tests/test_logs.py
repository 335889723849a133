import logging

import pytest

from news_monitor.logs import configure_logging, resolve_level


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestConfigureLogging:
    def test_file_handler_and_directory(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "logs" / "app.log"

        root = configure_logging("debug", str(log_file))
        logging.getLogger("news_monitor.test").debug("hello %s", "world")
        for handler in root.handlers:
            handler.flush()

        assert root.level == logging.DEBUG
        assert "[DEBUG] news_monitor.test: hello world" in log_file.read_text(encoding="utf-8")

    def test_quiets_third_party_loggers(self, restore_root_logger):
        configure_logging("info")

        assert logging.getLogger("urllib3").level == logging.WARNING
        assert logging.getLogger("apscheduler").level == logging.WARNING

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            resolve_level("verbose")

    def test_warn_alias(self):
        assert resolve_level("WARN") == logging.WARNING
