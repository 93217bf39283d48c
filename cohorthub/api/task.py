#cohorthub/api/task.py
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from cohorthub.schemas.task import TaskCreate, TaskRead, SubmissionCreate, SubmissionRead, GradeIn
from cohorthub.schemas.response import SuccessResponse
from cohorthub.crud.submission import (
    create_task,
    get_task,
    submit_task,
    get_submission,
    get_user_submissions,
    grade_submission,
    update_grade,
    remove_grade,
    delete_submission,
)
from cohorthub.core.exceptions import ForbiddenError
from cohorthub.dependencies import get_db, get_current_active_user, get_current_staff_user, is_staff
from cohorthub.models.user import User as UserModel

router = APIRouter(tags=["Tasks"])

@router.post("/tasks/", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
def create_task_api(
    data: TaskCreate,
    db: Session = Depends(get_db),
    staff: UserModel = Depends(get_current_staff_user)
):
    """
    Создать задание (менторы и админы).
    """
    return create_task(db, data.model_dump())

@router.get("/tasks/{task_id}", response_model=TaskRead)
def read_task(task_id: int, db: Session = Depends(get_db)):
    return get_task(db, task_id)

@router.post("/tasks/{task_id}/submissions", response_model=SubmissionRead, status_code=status.HTTP_201_CREATED)
def submit_task_api(
    task_id: int,
    data: SubmissionCreate,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    """
    Сдать задание (повторная сдача заменяет предыдущую и сбрасывает оценку).
    """
    return submit_task(db, user.id, task_id, data.content)

@router.get("/submissions/me", response_model=List[SubmissionRead])
def read_my_submissions(
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    return get_user_submissions(db, user.id, status=status_filter)

@router.post("/submissions/{submission_id}/grade", response_model=SubmissionRead)
def grade_submission_api(
    submission_id: int,
    data: GradeIn,
    db: Session = Depends(get_db),
    staff: UserModel = Depends(get_current_staff_user)
):
    return grade_submission(db, submission_id, data.score, data.feedback, graded_by=staff.id)

@router.put("/submissions/{submission_id}/grade", response_model=SubmissionRead)
def update_grade_api(
    submission_id: int,
    data: GradeIn,
    db: Session = Depends(get_db),
    staff: UserModel = Depends(get_current_staff_user)
):
    return update_grade(db, submission_id, data.score, data.feedback, graded_by=staff.id)

@router.delete("/submissions/{submission_id}/grade", response_model=SubmissionRead)
def remove_grade_api(
    submission_id: int,
    db: Session = Depends(get_db),
    staff: UserModel = Depends(get_current_staff_user)
):
    return remove_grade(db, submission_id)

@router.delete("/submissions/{submission_id}", response_model=SuccessResponse)
def delete_submission_api(
    submission_id: int,
    db: Session = Depends(get_db),
    user: UserModel = Depends(get_current_active_user)
):
    """
    Удалить сдачу: владелец или ментор/админ.
    """
    submission = get_submission(db, submission_id)
    if submission.user_id != user.id and not is_staff(user):
        raise ForbiddenError("You can only delete your own submissions.")
    delete_submission(db, submission_id)
    return SuccessResponse(result=submission_id, detail="Submission deleted")
