from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Mapping, Optional, Union

_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
_DATEFMT = "%H:%M:%S"
_NOISY = ("numexpr", "matplotlib", "lightgbm")


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    name: str | None = None,
) -> logging.Logger:
    """Configure a stdout handler (and optionally a file handler) on ``name``.

    ``name=None`` configures the root logger, which is what the CLI tools use
    so that every ``logging.getLogger(__name__)`` in the library is covered.
    """
    lvl = getattr(logging, log_level.upper(), logging.INFO)
    logger = logging.getLogger(name)
    logger.setLevel(lvl)
    logger.handlers[:] = []

    fmt = logging.Formatter(_FORMAT, _DATEFMT)

    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(lvl)
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(lvl)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    for noisy in _NOISY:
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return logger


def setup_from_config(section: Mapping[str, Any] | None, log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    section = section or {}
    return setup_logging(
        log_level=str(section.get("level", "INFO")),
        log_file=log_file or section.get("file"),
    )


__all__ = ["setup_logging", "setup_from_config"]
