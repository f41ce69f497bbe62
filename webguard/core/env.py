"""Environment variable checks run before the app starts serving.

Missing credentials should stop startup immediately instead of surfacing as
a failed database call on the first request.
"""

from __future__ import annotations

import logging
import os
from typing import Mapping

from webguard.core.config import APP_ENV
from webguard.core.errors import ConfigurationAppError

logger = logging.getLogger(__name__)

REQUIRED_ENV_VARS: tuple[str, ...] = (
    "DATABASE_URL",
    "DATABASE_ANON_KEY",
)

# AI provider keys; features depending on them degrade when absent
OPTIONAL_ENV_VARS: tuple[str, ...] = (
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "PERPLEXITY_API_KEY",
    "FAL_API_KEY",
)


def _environ(environ: Mapping[str, str] | None) -> Mapping[str, str]:
    return os.environ if environ is None else environ


def validate_env(environ: Mapping[str, str] | None = None) -> None:
    """Ensure every required variable is set to a non-empty value.

    All missing names are reported together so one restart fixes them all.

    Args:
        environ: Mapping to inspect; defaults to ``os.environ``.

    Raises:
        ConfigurationAppError: If any required variable is missing or empty.
    """
    env = _environ(environ)

    missing = [name for name in REQUIRED_ENV_VARS if not env.get(name)]
    if missing:
        logger.error("env.validation_failed", extra={"missing": missing})
        raise ConfigurationAppError(
            code="missing_env_vars",
            message=f"Missing required environment variables: {', '.join(missing)}",
            details={
                "missing": missing,
                "hint": f"Check your .env.{APP_ENV} file and ensure all required variables are set.",
            },
        )

    optional_missing = [name for name in OPTIONAL_ENV_VARS if not env.get(name)]
    if optional_missing:
        logger.debug("env.optional_missing", extra={"missing": optional_missing})

    logger.info("env.validated", extra={"required": len(REQUIRED_ENV_VARS)})


def get_env_var(
    name: str,
    fallback: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Read an environment variable, falling back when it is unset or empty.

    Raises:
        ConfigurationAppError: If the variable is unset/empty and no fallback is given.
    """
    value = _environ(environ).get(name)
    if value:
        return value
    if fallback is None:
        raise ConfigurationAppError(
            code="missing_env_var",
            message=f"Environment variable {name} is required but not set",
            details={"missing": [name]},
        )
    return fallback


def has_env_var(name: str, environ: Mapping[str, str] | None = None) -> bool:
    return bool(_environ(environ).get(name))
