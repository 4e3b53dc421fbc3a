import logging
import os
import sys

from patchouli.rules.models import Rules

logger = logging.getLogger(__name__)


def validate_ops_rules(rules: Rules) -> None:
    """
    Validate operational requirements before startup.
    Exits the process when required environment variables are missing.
    """
    missing = [env_var for env_var in rules.ops.required_env if env_var not in os.environ]
    if missing:
        logger.critical("Missing required environment variables: %s", ", ".join(missing))
        sys.exit(1)

    if not os.environ.get("PATCHOULI_LLM_API_KEY"):
        logger.warning("PATCHOULI_LLM_API_KEY not set; AI search and clue generation are off")
    if not os.environ.get("PATCHOULI_JWT_SECRET"):
        logger.warning("PATCHOULI_JWT_SECRET not set; using the unsafe development secret")

    logger.info("Configuration validated.")
