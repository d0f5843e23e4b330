"""Engine construction and the boot-time connection retry policy."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy import Connection, Engine, create_engine
from sqlalchemy.exc import SQLAlchemyError
from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from dbproxy.config import Settings

logger = logging.getLogger(__name__)


class ConnectivityError(RuntimeError):
    """Raised when the database stays unreachable after every retry."""


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounded retry with a fixed interval between attempts."""

    max_attempts: int = 5
    interval_seconds: float = 10.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        if self.interval_seconds < 0:
            raise ValueError("interval_seconds cannot be negative.")

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.connect_max_attempts,
            interval_seconds=settings.connect_retry_interval_seconds,
        )


def create_db_engine(settings: Settings) -> Engine:
    """Build the engine behind the proxy's single connection."""

    return create_engine(settings.sqlalchemy_url(), future=True, pool_pre_ping=True)


def connect_with_retry(
    engine: Engine,
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> Connection:
    """Open one autocommit connection, retrying on driver errors per ``policy``."""

    retrying = Retrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_fixed(policy.interval_seconds),
        retry=retry_if_exception_type(SQLAlchemyError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        sleep=sleep,
    )
    try:
        connection = retrying(_open_connection, engine)
    except RetryError as exc:
        cause = exc.last_attempt.exception()
        logger.error(
            "db.connect_exhausted max_attempts=%d error=%s",
            policy.max_attempts,
            cause,
        )
        raise ConnectivityError(
            f"Could not connect to the database after {policy.max_attempts} attempts"
        ) from cause
    logger.info("Database connection established.")
    return connection


def _open_connection(engine: Engine) -> Connection:
    return engine.connect().execution_options(isolation_level="AUTOCOMMIT")
