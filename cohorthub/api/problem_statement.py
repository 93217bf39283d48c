#cohorthub/api/problem_statement.py
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from cohorthub.schemas.problem_statement import ProblemStatementCreate, ProblemStatementRead, SelectionSnapshot
from cohorthub.crud.problem_statement import (
    create_problem_statement,
    get_problem_statement,
    list_problem_statements,
    selection_snapshot,
)
from cohorthub.dependencies import get_db, get_current_staff_user
from cohorthub.models.user import User as UserModel

router = APIRouter(prefix="/problem-statements", tags=["Problem statements"])

@router.get("/", response_model=List[ProblemStatementRead])
def list_problem_statements_api(
    search: Optional[str] = Query(None),
    available_only: bool = Query(False, description="Только задачи со свободными местами"),
    db: Session = Depends(get_db)
):
    return list_problem_statements(db, search=search, available_only=available_only)

@router.post("/", response_model=ProblemStatementRead, status_code=status.HTTP_201_CREATED)
def create_problem_statement_api(
    data: ProblemStatementCreate,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_staff_user)
):
    """
    Добавить задачу в каталог (менторы и админы).
    """
    return create_problem_statement(db, data.model_dump())

@router.get("/{problem_statement_id}", response_model=ProblemStatementRead)
def read_problem_statement(
    problem_statement_id: int,
    db: Session = Depends(get_db)
):
    return get_problem_statement(db, problem_statement_id)

@router.get("/{problem_statement_id}/selections", response_model=SelectionSnapshot)
def read_selections(
    problem_statement_id: int,
    db: Session = Depends(get_db)
):
    """
    Счётчик выбора и список выбравших команд.
    """
    return selection_snapshot(db, problem_statement_id)
