#cohorthub/api/user.py
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from cohorthub.schemas.user import UserCreate, UserRead
from cohorthub.crud.user import create_user, get_users, require_user
from cohorthub.dependencies import get_db, get_current_active_user, get_current_staff_user
from cohorthub.models.user import User as DBUser

router = APIRouter(prefix="/users", tags=["Users"])

@router.get("/me", response_model=UserRead)
def read_users_me(current_user: DBUser = Depends(get_current_active_user)):
    """
    Get current user profile.
    """
    return current_user

@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    staff: DBUser = Depends(get_current_staff_user)
):
    """
    Register a cohort participant (mentors and admins only).
    """
    return create_user(db, data.model_dump())

@router.get("/{user_id}", response_model=UserRead)
def get_user_profile(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    return require_user(db, user_id)

@router.get("/", response_model=List[UserRead])
def list_users(
    is_active: Optional[bool] = Query(None),
    role: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    List users with optional filters.
    """
    filters = {}
    if is_active is not None:
        filters["is_active"] = is_active
    if role:
        filters["role"] = role
    if search:
        filters["search"] = search
    return get_users(db, filters)
