"""
Structured logging for conflux.

Every record is a single JSON line with consistent, queryable fields so a run
can be followed across generation attempts, fallback hops and orchestration
steps.

EXAMPLE QUERIES (Loki / jq)
===========================
# Every failed generation attempt
{app="conflux"} | json | module="llm.generator" action="attempt_failed"

# Recovery decisions (prompt augmentation, temperature decay, escalation)
{app="conflux"} | json | module="llm.recovery"

# Fallback hops
{app="conflux"} | json | action=~"fallback_.*"

# One orchestration run end to end
{app="conflux"} | json | run_id="<uuid>"

USAGE
=====
from conflux.utils.logging import log, get_logger

logger = get_logger()
log.info(logger, "sequencer", "step_start", "Running step",
         run_id=run_id, method="critical", step=2)

log.error(logger, "llm.generator", "attempt_failed", "Provider call raised",
          error=str(e), provider="openai", attempt=1)

ACTION NAMING
=============
  *_start      beginning of an operation
  *_done       successful completion
  *_failed     error/failure
  *_skipped    intentionally skipped
  *_fallback   falling back to an alternative path
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


class StructuredFormatter(logging.Formatter):
    """JSON formatter; third-party records are wrapped in the same envelope."""

    def __init__(self, pretty: bool = False):
        super().__init__()
        self.pretty = pretty

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()

        if getattr(record, "_structured", False):
            data = {
                "ts": _timestamp(),
                "level": record.levelname,
                "module": record._module,
                "action": record._action,
                "msg": msg,
            }
            for key, value in record._extra.items():
                if value is not None:
                    data[key] = value
        else:
            data = {
                "ts": _timestamp(),
                "level": record.levelname,
                "module": record.name,
                "action": "log",
                "msg": msg,
            }

        if record.exc_info and not self.pretty:
            data["exc"] = self.formatException(record.exc_info)

        if self.pretty:
            return self._pretty(data)
        return json.dumps(data, default=str, separators=(",", ":"))

    def _pretty(self, data: dict) -> str:
        """Human-readable format for development."""
        ts = data["ts"][11:23]
        lvl = data["level"][0]
        mod = data["module"].upper()[:14].ljust(14)

        skip = {"ts", "level", "module", "action", "msg"}
        ctx = " ".join(f"{k}={v}" for k, v in data.items() if k not in skip)

        line = f"{ts} {lvl} [{mod}] {data['action']}: {data['msg']}"
        return line + (f" | {ctx}" if ctx else "")


class StructuredLogger:
    """
    Centralized structured logging.

    Every method takes a stdlib logger, a module name, an action name, a
    message, and arbitrary context fields.
    """

    def _log(
        self,
        logger: logging.Logger,
        level: int,
        module: str,
        action: str,
        msg: str,
        **kwargs,
    ) -> None:
        extra = {
            "_structured": True,
            "_module": module,
            "_action": action,
            "_extra": {k: v for k, v in kwargs.items() if v is not None},
        }
        logger.log(level, msg, extra=extra)

    def info(self, logger: logging.Logger, module: str, action: str, msg: str, **kwargs) -> None:
        self._log(logger, logging.INFO, module, action, msg, **kwargs)

    def warning(self, logger: logging.Logger, module: str, action: str, msg: str, **kwargs) -> None:
        self._log(logger, logging.WARNING, module, action, msg, **kwargs)

    def error(
        self,
        logger: logging.Logger,
        module: str,
        action: str,
        msg: str,
        error: Optional[str] = None,
        error_type: Optional[str] = None,
        **kwargs,
    ) -> None:
        self._log(
            logger, logging.ERROR, module, action, msg,
            error=error, error_type=error_type, **kwargs,
        )

    def debug(self, logger: logging.Logger, module: str, action: str, msg: str, **kwargs) -> None:
        self._log(logger, logging.DEBUG, module, action, msg, **kwargs)


# Singleton instance, import this everywhere
log = StructuredLogger()

_shared_logger: Optional[logging.Logger] = None


def get_logger() -> logging.Logger:
    """Shared logger for library code."""
    global _shared_logger
    if _shared_logger is None:
        _shared_logger = logging.getLogger("conflux")
    return _shared_logger


def configure_logging() -> None:
    """Install the structured formatter on the root logger. Call once at startup.

    Reads from environment:
      LOG_FORMAT: "json" (default) or "pretty" (for development)
      LOG_LEVEL: "INFO" (default), "DEBUG", "WARNING", "ERROR"
    """
    pretty = os.environ.get("LOG_FORMAT", "json") == "pretty"
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter(pretty=pretty))

    logging.basicConfig(level=level, handlers=[handler], force=True)

    # LangChain / LangGraph are extremely chatty at DEBUG
    for name in ("langchain", "langchain_core", "langchain_openai",
                 "langchain_anthropic", "langchain_google_genai", "langgraph"):
        logging.getLogger(name).setLevel(logging.WARNING)

    # Provider SDKs and HTTP clients
    for name in ("openai", "anthropic", "google_genai", "httpx", "httpcore", "urllib3", "asyncio"):
        logging.getLogger(name).setLevel(logging.WARNING)
