# cohorthub/dependencies.py

from typing import Generator, Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from cohorthub.core.exceptions import AuthError, ForbiddenError
from cohorthub.core.security import bearer_scheme, verify_access_token
from cohorthub.crud.user import get_user
from cohorthub.database import SessionLocal
from cohorthub.models.user import User

STAFF_ROLES = ("mentor", "admin")

def get_db() -> Generator[Session, None, None]:
    """
    Создает и возвращает сессию базы данных, гарантирует закрытие после использования.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    Декодирует JWT-токен, получает пользователя из базы, если токен валиден.
    """
    if credentials is None:
        raise AuthError("Not authenticated")
    payload = verify_access_token(credentials.credentials)
    if payload is None:
        raise AuthError()
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthError()
    user = get_user(db, user_id)
    if user is None:
        raise AuthError()
    return user

def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Проверяет, что пользователь активен.
    """
    if not current_user.is_active:
        raise ForbiddenError("Inactive user")
    return current_user

def is_staff(user: User) -> bool:
    return user.is_superuser or user.role in STAFF_ROLES

def get_current_staff_user(
    current_user: User = Depends(get_current_active_user)
) -> User:
    """
    Менторы, админы и суперюзеры: оценки, посещаемость, каталог задач.
    """
    if not is_staff(current_user):
        raise ForbiddenError("Only mentors and admins can perform this action.")
    return current_user
