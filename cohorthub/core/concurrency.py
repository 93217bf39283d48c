# cohorthub/core/concurrency.py
"""
Единица работы для операций движка.

`atomic` оборачивает функцию вида `fn(db, ...)`: выполняет её, делает commit,
а при конфликте версий (StaleDataError) или ожидании блокировки откатывает
транзакцию и повторяет операцию с чистого чтения. После исчерпания попыток
поднимается ContentionError, по истечении общего бюджета времени
поднимается OperationTimeout. Доменные ошибки откатываются и пробрасываются как есть.
"""

import functools
import logging
import random
import time
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from cohorthub.core import events
from cohorthub.core.exceptions import BaseAppException, ContentionError, OperationTimeout
from cohorthub.core.settings import settings

logger = logging.getLogger("CohortHub.Atomic")

_RETRYABLE_PGCODES = {"40001", "40P01", "55P03"}
_TIMEOUT_PGCODES = {"57014"}
_RETRYABLE_MESSAGES = ("database is locked", "database table is locked", "deadlock detected", "could not serialize")

def _pgcode(exc: OperationalError) -> Optional[str]:
    return getattr(exc.orig, "pgcode", None)

def is_timeout(exc: OperationalError) -> bool:
    return _pgcode(exc) in _TIMEOUT_PGCODES or "statement timeout" in str(exc.orig).lower()

def is_lock_conflict(exc: OperationalError) -> bool:
    if _pgcode(exc) in _RETRYABLE_PGCODES:
        return True
    message = str(exc.orig).lower()
    return any(m in message for m in _RETRYABLE_MESSAGES)

def _backoff(attempt: int, deadline: float) -> None:
    delay = settings.ATOMIC_BACKOFF_SECONDS * (2 ** (attempt - 1)) * random.uniform(0.5, 1.5)
    delay = min(delay, max(deadline - time.monotonic(), 0))
    if delay > 0:
        time.sleep(delay)

def atomic(
    operation: str,
    on_integrity_error: Optional[Callable[[IntegrityError], BaseAppException]] = None,
    max_attempts: Optional[int] = None,
):
    """
    Декоратор единицы работы.

    on_integrity_error переводит нарушение уникального ключа в доменную ошибку
    (например DuplicateTeamName); без него IntegrityError пробрасывается.
    """
    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(db: Session, *args, attempts: Optional[int] = None, **kwargs):
            limit = attempts or max_attempts or settings.ATOMIC_MAX_ATTEMPTS
            deadline = time.monotonic() + settings.OPERATION_TIMEOUT_SECONDS

            for attempt in range(1, limit + 1):
                if time.monotonic() >= deadline:
                    raise OperationTimeout(f"{operation} did not finish in {settings.OPERATION_TIMEOUT_SECONDS}s")
                # Каждая попытка читает состояние заново
                db.expire_all()
                try:
                    result = fn(db, *args, **kwargs)
                    db.commit()
                except BaseAppException:
                    db.rollback()
                    events.discard(db)
                    raise
                except IntegrityError as e:
                    db.rollback()
                    events.discard(db)
                    logger.warning(f"{operation}: integrity error: {e.orig}")
                    if on_integrity_error is not None:
                        raise on_integrity_error(e) from e
                    raise
                except StaleDataError as e:
                    db.rollback()
                    events.discard(db)
                    logger.warning(f"{operation}: version conflict on attempt {attempt}/{limit}: {e}")
                except PoolTimeoutError as e:
                    db.rollback()
                    events.discard(db)
                    logger.error(f"{operation}: connection pool timeout: {e}")
                    raise OperationTimeout(f"{operation}: no database connection available") from e
                except OperationalError as e:
                    db.rollback()
                    events.discard(db)
                    if is_timeout(e):
                        logger.error(f"{operation}: statement timeout: {e.orig}")
                        raise OperationTimeout(f"{operation}: database statement timed out") from e
                    if not is_lock_conflict(e):
                        logger.error(f"{operation}: database error: {e.orig}")
                        raise
                    logger.warning(f"{operation}: lock conflict on attempt {attempt}/{limit}: {e.orig}")
                else:
                    events.flush(db)
                    return result
                if attempt < limit:
                    _backoff(attempt, deadline)

            logger.warning(f"{operation}: giving up after {limit} attempts")
            raise ContentionError(f"{operation}: too many concurrent updates, retry later", attempts=limit)
        return wrapper
    return decorator
