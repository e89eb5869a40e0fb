import io
import logging

import pytest

import core.logging_config as logging_config
from core.logging_config import configure_logging


@pytest.fixture
def root_logger(monkeypatch):
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    monkeypatch.setattr(logging_config, "_configured", False)
    yield root
    # Прибираємо лише те, що додав configure_logging
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
    root.setLevel(saved_level)


def _installed(root, stream):
    return [h for h in root.handlers if isinstance(h, logging.StreamHandler) and h.stream is stream]


def test_configure_is_idempotent(root_logger):
    stream = io.StringIO()
    configure_logging("debug", stream=stream)
    configure_logging("debug", stream=stream)

    assert len(_installed(root_logger, stream)) == 1
    assert root_logger.level == logging.DEBUG

    logging.getLogger("services.tax_service").info("calculated")
    assert "INFO [services.tax_service] calculated" in stream.getvalue()


def test_unknown_level_falls_back_to_info(root_logger):
    stream = io.StringIO()
    configure_logging("verbose", stream=stream)
    assert root_logger.level == logging.INFO
    assert len(_installed(root_logger, stream)) == 1
