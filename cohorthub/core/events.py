# cohorthub/core/events.py
"""
Исходящие уведомления движка: `team-changed` и `score-updated`.

События ставятся в очередь сессии внутри единицы работы и доставляются
подписчикам только после успешного commit. При rollback очередь сбрасывается.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, List, Any

from sqlalchemy.orm import Session

logger = logging.getLogger("CohortHub.Events")

TEAM_CHANGED = "team-changed"
SCORE_UPDATED = "score-updated"

_PENDING_KEY = "cohorthub.pending_events"

_subscribers: Dict[str, List[Callable[..., Any]]] = defaultdict(list)

def subscribe(event: str, handler: Callable[..., Any]) -> None:
    _subscribers[event].append(handler)

def unsubscribe(event: str, handler: Callable[..., Any]) -> None:
    if handler in _subscribers.get(event, []):
        _subscribers[event].remove(handler)

def queue(db: Session, event: str, **payload) -> None:
    """Отложить событие до commit текущей единицы работы."""
    db.info.setdefault(_PENDING_KEY, []).append((event, payload))

def discard(db: Session) -> None:
    db.info.pop(_PENDING_KEY, None)

def flush(db: Session) -> None:
    """Доставить накопленные события. Ошибка подписчика не откатывает commit."""
    pending = db.info.pop(_PENDING_KEY, [])
    for event, payload in pending:
        logger.info(f"Event {event} {payload}")
        for handler in list(_subscribers.get(event, [])):
            try:
                handler(**payload)
            except Exception as e:
                logger.error(f"Subscriber {handler!r} failed on {event}: {e}", exc_info=True)
