"""Logging setup for scheduled operator runs.

Every module calls get_logger(__name__); the first call attaches a console
handler to the root logger. Set LOG_LEVEL to change verbosity and LOG_FILE to
also append to a file, which is useful when cron discards stdout.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional


_configured = False


def _ensure_configured() -> None:
    global _configured
    if _configured:
        return

    level_name = os.getenv('LOG_LEVEL', 'INFO')
    log_file = os.getenv('LOG_FILE', '')

    level = getattr(logging, level_name.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # Console handler
    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(formatter)
    root.addHandler(ch)

    # File handler, only when LOG_FILE is set
    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(log_path, encoding='utf-8')
            fh.setLevel(level)
            fh.setFormatter(formatter)
            root.addHandler(fh)
        except OSError:
            root.exception('Failed to create file log handler; continuing with console only')

    # web3 and urllib3 are chatty at DEBUG
    for noisy in ('web3', 'urllib3'):
        logging.getLogger(noisy).setLevel(max(level, logging.INFO))

    _configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Named logger sharing the root handlers set up on first use."""
    _ensure_configured()
    return logging.getLogger(name)
