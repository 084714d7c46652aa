"""
Tests for logging setup.
"""

from __future__ import annotations

import logging

from lfspkg.logging import get_logger, setup_logging


def test_setup_is_idempotent(cfg):
    first = setup_logging(cfg)
    n = len(first.handlers)
    second = setup_logging(cfg)
    assert first is second
    assert len(second.handlers) == n == 1
    assert second.propagate is False


def test_file_handler_gets_module_name(root, cfg):
    cfg = cfg.with_overrides(log_file=root / "logs" / "lfspkg.log")
    setup_logging(cfg)
    get_logger("fetcher").debug("hello from the fetcher")
    for h in logging.getLogger("lfspkg").handlers:
        h.flush()
    text = (root / "logs" / "lfspkg.log").read_text()
    assert "[fetcher] hello from the fetcher" in text


def test_console_level_follows_verbose(cfg, capsys):
    setup_logging(cfg)
    get_logger("cli").debug("quiet")
    setup_logging(cfg, verbose=True)
    get_logger("cli").debug("loud")
    err = capsys.readouterr().err
    assert "quiet" not in err
    assert "[cli] loud" in err
