"""Runtime boot helpers for the Prompt Paster CLI.

Updates:
  v0.1.1 - 2026-09-21 - Add LiteLLM logging toggle helper.
  v0.1.0 - 2026-09-18 - Configure logging from an INI file or sensible defaults.
"""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path

DEFAULT_LOGGING_CONFIG = Path("config/logging.conf")

_LITELLM_LOGGERS = ("litellm", "LiteLLM", "LiteLLM Router", "LiteLLM Proxy")


def setup_logging(logging_conf_path: Path | None) -> None:
    """Configure logging using *logging_conf_path* when available."""
    path = logging_conf_path or DEFAULT_LOGGING_CONFIG
    if path.exists():
        try:
            logging.config.fileConfig(path, disable_existing_loggers=False)
            return
        except (KeyError, ValueError, OSError, RuntimeError) as exc:
            logging.basicConfig(level=logging.INFO)
            logging.getLogger("prompt_paster.main").warning(
                "Ignoring invalid logging configuration %s: %s", path, exc
            )
            return
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def configure_litellm_logging(enabled: bool) -> None:
    """Enable or disable upstream LiteLLM library logs."""
    for name in _LITELLM_LOGGERS:
        litellm_logger = logging.getLogger(name)
        litellm_logger.propagate = True
        litellm_logger.disabled = not enabled
        litellm_logger.setLevel(logging.NOTSET if enabled else logging.CRITICAL)
