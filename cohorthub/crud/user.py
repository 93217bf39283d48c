#cohorthub/crud/user.py
from sqlalchemy import or_
from sqlalchemy.orm import Session
from cohorthub.models.user import User
from cohorthub.core.concurrency import atomic
from cohorthub.core.exceptions import UserNotFound, ValidationError
from typing import List, Optional
import logging

logger = logging.getLogger("CohortHub.Users")

USER_ROLES = ("participant", "mentor", "admin")

def _duplicate_user(e) -> ValidationError:
    return ValidationError("User with this username or email already exists.")

@atomic("create_user", on_integrity_error=_duplicate_user)
def create_user(db: Session, data: dict) -> User:
    """
    Зарегистрировать участника. Пароли и вход обслуживаются вне движка.
    """
    username = (data.get("username") or "").strip()
    email = (data.get("email") or "").strip().lower()
    if not username or not email:
        raise ValidationError("Username and email are required.")
    role = data.get("role", "participant")
    if role not in USER_ROLES:
        raise ValidationError(f"Unknown role '{role}'.")
    if db.query(User).filter(or_(User.username == username, User.email == email)).first():
        raise ValidationError("User with this username or email already exists.")

    user = User(
        username=username,
        email=email,
        full_name=data.get("full_name"),
        role=role,
        is_active=data.get("is_active", True),
        is_superuser=data.get("is_superuser", False),
    )
    db.add(user)
    db.flush()
    logger.info(f"Created user '{user.username}' (ID: {user.id})")
    return user

def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)

def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()

def require_user(db: Session, user_id: int) -> User:
    """
    Получить пользователя или поднять UserNotFound.
    """
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFound(f"User with id={user_id} not found.")
    return user

def get_users(db: Session, filters: dict = None) -> List[User]:
    query = db.query(User)
    filters = filters or {}
    if "is_active" in filters:
        query = query.filter(User.is_active == filters["is_active"])
    if "role" in filters:
        query = query.filter(User.role == filters["role"])
    if "team_id" in filters:
        query = query.filter(User.team_id == filters["team_id"])
    if filters.get("search"):
        val = f"%{filters['search']}%"
        query = query.filter(User.username.ilike(val) | User.full_name.ilike(val))
    return query.order_by(User.username).all()
