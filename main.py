"""Application entry point for Prompt Paster.

Updates:
  v0.2.0 - 2026-09-28 - Fill the prompt source from settings for library commands.
  v0.1.1 - 2026-09-21 - Apply LiteLLM logging toggle from settings.
  v0.1.0 - 2026-09-18 - Wire settings, core services, and CLI commands.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from cli.commands import COMMAND_SPECS
from cli.parser import build_parser
from cli.runtime import configure_litellm_logging, setup_logging
from cli.settings_summary import print_settings_summary
from config import SettingsError, load_settings
from core import CoreServices, PromptPasterError, build_services

EXIT_SETTINGS_ERROR = 2
EXIT_SERVICES_ERROR = 3


def main(argv: Sequence[str] | None = None) -> int:
    """Entrypoint that wires settings, services, and CLI commands."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.logging_config)

    logger = logging.getLogger("prompt_paster.main")
    try:
        settings = load_settings()
    except SettingsError as exc:
        cause = exc.__cause__
        logger.error("Failed to load settings: %s%s", exc, f" ({cause})" if cause else "")
        return EXIT_SETTINGS_ERROR

    configure_litellm_logging(settings.litellm_logging_enabled)
    if args.print_settings:
        print_settings_summary(settings)
        return 0

    spec = COMMAND_SPECS.get(args.command) if args.command else None
    if spec is None:
        parser.print_help()
        return 0
    if spec.uses_prompt_library and getattr(args, "prompts", None) is None:
        args.prompts = settings.prompts_path

    services: CoreServices | None = None
    try:
        services = build_services(settings)
    except PromptPasterError as exc:
        logger.error("Failed to initialise services: %s", exc)
        return EXIT_SERVICES_ERROR

    try:
        return spec.handler(services, args, logger)
    finally:
        services.close()


if __name__ == "__main__":
    raise SystemExit(main())
