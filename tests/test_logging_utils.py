from __future__ import annotations

import json
import logging

from sunday.logging_utils import configure_logging


def test_configure_logging_emits_json_and_redacts_bearer_tokens(capsys) -> None:
    root_logger = logging.getLogger()
    old_handlers = list(root_logger.handlers)
    old_level = root_logger.level
    try:
        configure_logging("INFO")
        logging.getLogger("sunday.test").info(
            "calling api with Authorization: Bearer abc.def.ghi",
            extra={"event": "api_call", "board_id": 7, "automation_id": 3},
        )
        for handler in logging.getLogger().handlers:
            handler.flush()
        captured = capsys.readouterr().out
        assert "abc.def.ghi" not in captured
        payload = json.loads(captured.strip().splitlines()[-1])
        assert payload["event"] == "api_call"
        assert payload["board_id"] == 7
        assert payload["automation_id"] == 3
        assert payload["level"] == "INFO"
        assert "Bearer <redacted>" in payload["message"]
    finally:
        root_logger.handlers.clear()
        for handler in old_handlers:
            root_logger.addHandler(handler)
        root_logger.setLevel(old_level)


def test_configure_logging_redacts_query_tokens(capsys) -> None:
    root_logger = logging.getLogger()
    old_handlers = list(root_logger.handlers)
    old_level = root_logger.level
    try:
        configure_logging("DEBUG")
        logging.getLogger("sunday.test").warning(
            "GET https://example.com/sunday/automations.php?action=list&token=%s", "s3cret"
        )
        for handler in logging.getLogger().handlers:
            handler.flush()
        captured = capsys.readouterr().out
        assert "s3cret" not in captured
        assert "token=<redacted>" in captured
    finally:
        root_logger.handlers.clear()
        for handler in old_handlers:
            root_logger.addHandler(handler)
        root_logger.setLevel(old_level)
