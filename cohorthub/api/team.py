#cohorthub/api/team.py
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from cohorthub.schemas.team import (
    TeamCreate,
    TeamRead,
    TeamUpdate,
    TeamLeave,
    TeamTransfer,
    TeamList,
    ProblemStatementSelect,
)
from cohorthub.schemas.user import UserShort
from cohorthub.schemas.response import SuccessResponse
from cohorthub.crud.team import (
    create_team,
    get_team,
    get_all_teams,
    get_my_team,
    get_available_users,
    join_team,
    leave_team,
    remove_member,
    transfer_leadership,
    disband_team,
    update_team,
    set_problem_statement,
)
from cohorthub.dependencies import get_db, get_current_active_user
from cohorthub.models.user import User as UserModel

router = APIRouter(prefix="/teams", tags=["Teams"])

@router.post("/", response_model=TeamRead, status_code=status.HTTP_201_CREATED)
def create_team_api(
    data: TeamCreate,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    """
    Создать новую команду (лидером становится текущий пользователь).
    """
    return create_team(
        db,
        name=data.name,
        leader_id=user.id,
        description=data.description or "",
        problem_statement_id=data.problem_statement_id,
    )

@router.get("/", response_model=TeamList)
def list_teams(
    search: Optional[str] = Query(None, description="Поиск по названию"),
    sort_by: str = Query("created_at"),
    page: int = Query(1, ge=1),
    limit: int = Query(60, ge=1, le=200),
    db: Session = Depends(get_db)
):
    """
    Список активных команд с поиском и пагинацией.
    """
    teams, total = get_all_teams(db, search=search, sort_by=sort_by, page=page, limit=limit)
    return TeamList(results=teams, total_count=total)

@router.get("/me", response_model=TeamRead)
def read_my_team(
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    return get_my_team(db, user.id)

@router.get("/available-users", response_model=List[UserShort])
def list_available_users(
    search: str = Query("", description="Поиск по имени, username или email"),
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    """
    Участники без команды.
    """
    return get_available_users(db, search=search)

@router.get("/{team_id}", response_model=TeamRead)
def read_team(
    team_id: int,
    db: Session = Depends(get_db)
):
    """
    Получить команду по ID.
    """
    return get_team(db, team_id)

@router.patch("/{team_id}", response_model=TeamRead)
def update_team_api(
    team_id: int,
    data: TeamUpdate,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    """
    Обновить команду одной операцией. Только лидер.
    """
    return update_team(db, team_id, user.id, **data.model_dump(exclude_unset=True))

@router.post("/{team_id}/join", response_model=TeamRead)
def join_team_api(
    team_id: int,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    return join_team(db, team_id, user.id)

@router.post("/{team_id}/leave", response_model=Optional[TeamRead])
def leave_team_api(
    team_id: int,
    data: Optional[TeamLeave] = None,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    """
    Выйти из команды. Лидер указывает transfer_to_user_id, если в команде есть другие участники.
    Возвращает команду после выхода или null, если команда распущена.
    """
    transfer_to = data.transfer_to_user_id if data else None
    return leave_team(db, team_id, user.id, transfer_to_user_id=transfer_to)

@router.delete("/{team_id}/members/{member_id}", response_model=TeamRead)
def remove_member_api(
    team_id: int,
    member_id: int,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    return remove_member(db, team_id, user.id, member_id)

@router.post("/{team_id}/transfer-leadership", response_model=TeamRead)
def transfer_leadership_api(
    team_id: int,
    data: TeamTransfer,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    return transfer_leadership(db, team_id, user.id, data.new_leader_id)

@router.delete("/{team_id}", response_model=SuccessResponse)
def disband_team_api(
    team_id: int,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    """
    Распустить команду (soft-delete). Только лидер.
    """
    disband_team(db, team_id, user.id)
    return SuccessResponse(result=team_id, detail="Team disbanded")

@router.put("/{team_id}/problem-statement", response_model=TeamRead)
def select_problem_statement_api(
    team_id: int,
    data: ProblemStatementSelect,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    return set_problem_statement(db, team_id, user.id, data.problem_statement_id)

@router.delete("/{team_id}/problem-statement", response_model=TeamRead)
def release_problem_statement_api(
    team_id: int,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    return set_problem_statement(db, team_id, user.id, None)
