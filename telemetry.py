# telemetry.py
import logging
import os
import sys
import warnings
from typing import Optional

from settings import settings


def configure_logging(default_level: Optional[str] = None):
    """
    Set up logging for the CLI and the API:
      - root logger at RF_LOG_LEVEL (ERROR unless overridden)
      - noisy third-party loggers silenced
      - the "redflag" logger kept at INFO on its own stderr handler
    Call once at program start, never at import time.
    """
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")

    # --- Ensure stdout uses UTF-8 on Windows (prevents charmap noise) ---
    if sys.platform.startswith("win"):
        try:
            sys.stdout.reconfigure(encoding="utf-8")
            sys.stderr.reconfigure(encoding="utf-8")
        except (AttributeError, OSError):
            pass

    # --- Force global logging config ---
    lvl_name = (default_level or settings.LOG_LEVEL).upper()
    lvl = getattr(logging, lvl_name, logging.ERROR)
    logging.basicConfig(
        level=lvl,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,  # override prior handlers from libs
    )

    # --- Silence noisy third-party loggers ---
    noisy = [
        "urllib3", "httpx", "httpcore",
        "uvicorn", "uvicorn.error", "uvicorn.access", "fastapi",
    ]
    for name in noisy:
        lg = logging.getLogger(name)
        lg.setLevel(logging.WARNING)

    # Convert Python warnings -> logging
    logging.captureWarnings(True)
    warnings.simplefilter("default")

    app_logger = logging.getLogger("redflag")
    app_logger.setLevel(logging.INFO)
    app_logger.propagate = False
    if not app_logger.handlers:
        h = logging.StreamHandler(sys.stderr)
        h.setLevel(logging.INFO)
        h.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        app_logger.addHandler(h)
    return app_logger
