"""Logging setup for the matching service."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_FILE_PATH = "logs/service.log"


def setup_logging(*, debug: bool = False, log_file: str | None = LOG_FILE_PATH) -> None:
    """Configure Python logging.

    - Console output at INFO+ (or DEBUG+ when debug=True) for operational logs.
    - Rotating file output at DEBUG+ when ``log_file`` is set.
    - Third-party HTTP and gRPC chatter from the Firestore client is kept
      at WARNING.
    """

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    console_handler.setFormatter(formatter)

    # Avoid duplicate handlers when reloading in dev.
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=2_000_000, backupCount=5
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for noisy in ("urllib3", "google", "grpc"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


logger = logging.getLogger("study_match")
