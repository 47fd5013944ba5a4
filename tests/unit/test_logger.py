import logging

import pytest

from vigilance.logging.logger import Log


class TestLog:
    def test_renders_context_pairs(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="vigilance"):
            Log.info("File uploaded", document_id=5, session_id="s1")
        assert caplog.messages[-1] == "File uploaded [document_id=5 session_id=s1]"

    def test_plain_message_without_context(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="vigilance"):
            Log.warning("Refusing transition")
        assert caplog.messages[-1] == "Refusing transition"

    def test_configure_sets_level_once(self) -> None:
        Log.configure("debug")
        Log.configure("info")
        logger = logging.getLogger("vigilance")
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1
