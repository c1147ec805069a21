import logging
import sys

import pytest

from tier_engine.cli._logging import configure_logging


class TestConfigureLogging:
    def setup_method(self) -> None:
        root = logging.getLogger()
        root.handlers.clear()
        root.setLevel(logging.WARNING)

    def test_default_sets_info_level(self) -> None:
        configure_logging()
        assert logging.getLogger().level == logging.INFO

    def test_verbose_sets_debug_level(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_engine_info_reaches_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging()
        logging.getLogger("tier_engine.services.jenks").info("Jenks has no data")
        logging.getLogger("tier_engine.services.elo").debug("Processed 3 comparisons")
        err = capsys.readouterr().err
        assert "tier_engine.services.jenks" in err
        assert "Processed 3 comparisons" not in err

    def test_verbose_shows_engine_debug(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True)
        logging.getLogger("tier_engine.services.elo").debug("Processed 3 comparisons")
        assert "Processed 3 comparisons" in capsys.readouterr().err

    def test_handler_writes_to_stderr(self) -> None:
        configure_logging()
        root = logging.getLogger()
        assert len(root.handlers) == 1
        handler = root.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert handler.stream is sys.stderr

    def test_idempotent(self) -> None:
        configure_logging()
        configure_logging()
        assert len(logging.getLogger().handlers) == 1
