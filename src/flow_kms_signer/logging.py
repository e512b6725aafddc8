"""Loguru logging configuration for flow-kms-signer.

Library modules log through ``loguru.logger`` and never add sinks on import;
applications call :func:`configure_logging` (or
:func:`configure_logging_from_settings`) once at startup.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from flow_kms_signer.config import Settings

_PROMOTED_EXTRAS = ("key_path", "address")
_INTERNAL_EXTRAS = ("serialized",)


def serialize_log(record: dict[str, Any]) -> str:
    """Serialize log record to JSON for structured logging.

    Args:
        record: Log record from loguru

    Returns:
        JSON string
    """
    subset = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
        "message": record["message"],
    }

    for key in _PROMOTED_EXTRAS:
        if key in record["extra"]:
            subset[key] = record["extra"][key]

    if record["exception"]:
        subset["exception"] = {
            "type": record["exception"].type.__name__,
            "value": str(record["exception"].value),
        }

    subset["extra"] = {
        k: v
        for k, v in record["extra"].items()
        if k not in _PROMOTED_EXTRAS and k not in _INTERNAL_EXTRAS
    }

    return json.dumps(subset, default=str)


def _json_format(record: dict[str, Any]) -> str:
    # loguru treats the returned string as a format template
    record["extra"]["serialized"] = serialize_log(record)
    return "{extra[serialized]}\n"


def configure_logging(
    level: str = "INFO",
    structured: bool = True,
    log_file: Path | None = None,
    environment: str = "production",
) -> None:
    """Configure loguru sinks.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        structured: Use JSON structured logging
        log_file: Optional file path for logs
        environment: Deployment environment (development/production)
    """
    logger.remove()

    # backtrace/diagnose can leak local variables such as digests
    enable_debug_info = environment == "development"

    if structured:
        logger.add(
            sys.stderr,
            format=_json_format,
            level=level,
            backtrace=enable_debug_info,
            diagnose=enable_debug_info,
        )
    else:
        logger.add(
            sys.stderr,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "<level>{message}</level> | "
                "{extra}"
            ),
            level=level,
            colorize=True,
            backtrace=enable_debug_info,
            diagnose=enable_debug_info,
        )

    if log_file:
        logger.add(
            log_file,
            format=_json_format if structured else "{time} | {level} | {message} | {extra}",
            level=level,
            rotation="100 MB",
            retention="30 days",
            backtrace=enable_debug_info,
            diagnose=enable_debug_info,
        )

    # The package disables itself on import; opt back in once sinks exist
    logger.enable("flow_kms_signer")


def configure_logging_from_settings(settings: Settings) -> None:
    """Configure logging from the observability settings."""
    observability = settings.observability
    configure_logging(
        level=observability.log_level,
        structured=observability.log_format == "json",
        log_file=observability.log_file_path,
        environment=settings.environment,
    )
