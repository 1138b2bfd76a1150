import logging
import os
import re
import sys
import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING, Optional

from loguru import logger

from jwt_refresh.core.config import Environment, settings

if TYPE_CHECKING:
    from loguru import Record

# ============================================
# REQUEST CONTEXT
# ============================================
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Anything shaped like a compact JWS: base64url header starting with {"
JWT_PATTERN = re.compile(r"eyJ[\w-]*\.[\w-]*\.[\w-]*")
REDACTED_TOKEN = "<redacted-jwt>"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<yellow>{extra[request_id]}</yellow> | "
    "<cyan>{name}:{line}</cyan> | "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS!UTC} | "
    "{level: <8} | "
    "PID:{extra[process_id]} | "
    "ReqID:{extra[request_id]} | "
    "{name}:{function}:{line} | "
    "{message}"
)


def redact_tokens(message: str) -> str:
    """Mask every JWT found in a log message."""
    return JWT_PATTERN.sub(REDACTED_TOKEN, message)


def correlation_filter(record: "Record") -> bool:
    """
    Enrich a record with the request and process ids and mask tokens in it.

    Outside a request a throwaway id is used so the format never breaks.

    Args:
        record (Record): Log record from Loguru.

    Returns:
        bool: Always True, records are never dropped.
    """
    record["extra"]["request_id"] = request_id_var.get() or str(uuid.uuid4())[:8]
    record["extra"]["process_id"] = os.getpid()
    record["message"] = redact_tokens(record["message"])

    return True


class InterceptHandler(logging.Handler):
    """
    Route records of the standard logging module (uvicorn, redis) to Loguru.
    """

    def emit(self, record: logging.LogRecord):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip the logging module's own frames so Loguru reports the real caller
        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logger():
    """
    Configure Loguru for the application.

    Installs a colored console sink and a rotating file sink under
    ``settings.log_dir``. Both go through correlation_filter, so every line
    carries its request id and never a raw token. Call once at startup.
    """
    logger.remove()

    log_level = logging.getLevelName(settings.log_level)
    is_development = settings.current_environment in {Environment.LOCAL, Environment.DEV}

    logger.add(
        sys.stdout,
        format=CONSOLE_FORMAT,
        level="DEBUG" if is_development else log_level,
        colorize=True,
        enqueue=True,
        filter=correlation_filter,
    )

    settings.log_dir.mkdir(parents=True, exist_ok=True)

    logger.add(
        settings.log_dir / "app.log",
        format=FILE_FORMAT,
        level=log_level,
        rotation="10 MB",
        retention="3 months",
        compression="gz",
        enqueue=True,
        filter=correlation_filter,
        backtrace=True,
        # Variable values in tracebacks could expose secrets outside development
        diagnose=is_development,
    )

    logger.info(
        f"Logger initialized | Environment: {settings.current_environment.value} | Level: {log_level}"
    )


def configure_uvicorn_logging():
    """
    Send uvicorn's loggers through Loguru.

    Call during startup, after setup_logger().
    """
    # Loguru does the actual level filtering
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for name in list(logging.root.manager.loggerDict):
        if name.startswith("uvicorn"):
            uvicorn_logger = logging.getLogger(name)
            uvicorn_logger.handlers = [InterceptHandler()]
            uvicorn_logger.propagate = False

    logger.debug("Uvicorn logging configured to use Loguru")


def shutdown_logger():
    """Flush queued records; call last during shutdown."""
    logger.info("Shutting down logger...")
    logger.complete()
