#cohorthub/crud/submission.py
from datetime import datetime, timezone
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from cohorthub.core.concurrency import atomic
from cohorthub.core.exceptions import SubmissionNotFound, TaskNotFound, ValidationError
from cohorthub.crud.score import refresh_score_cache
from cohorthub.crud.user import require_user
from cohorthub.models.task import Task, Submission, SUBMISSION_SUBMITTED, SUBMISSION_GRADED

logger = logging.getLogger("CohortHub.Submissions")

@atomic("create_task")
def create_task(db: Session, data: dict) -> Task:
    """
    Создать задание когорты.
    """
    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationError("Title is required.")
    max_score = data.get("max_score", 100)
    if not isinstance(max_score, int) or max_score <= 0:
        raise ValidationError("max_score must be a positive integer.")
    task = Task(
        title=title,
        description=(data.get("description") or "").strip(),
        max_score=max_score,
        due_date=data.get("due_date"),
        is_active=True,
    )
    db.add(task)
    db.flush()
    logger.info(f"Created task {task.id} '{task.title}' (max {task.max_score})")
    return task

def get_task(db: Session, task_id: int) -> Task:
    task = db.get(Task, task_id)
    if task is None:
        raise TaskNotFound(f"Task {task_id} not found.")
    return task

def get_submission(db: Session, submission_id: int) -> Submission:
    submission = db.get(Submission, submission_id)
    if submission is None:
        raise SubmissionNotFound(f"Submission {submission_id} not found.")
    return submission

def get_user_submissions(db: Session, user_id: int, status: Optional[str] = None) -> List[Submission]:
    query = db.query(Submission).filter(Submission.user_id == user_id)
    if status:
        query = query.filter(Submission.status == status)
    return query.order_by(Submission.submitted_at.desc(), Submission.id.desc()).all()

@atomic("submit_task")
def submit_task(db: Session, user_id: int, task_id: int, content: str) -> Submission:
    """
    Сдать задание. Повторная сдача сбрасывает оценку, и счёт пересчитывается.
    """
    user = require_user(db, user_id)
    task = get_task(db, task_id)
    if not task.is_active:
        raise ValidationError("This task is no longer accepting submissions.")
    content = (content or "").strip()
    if not content:
        raise ValidationError("Submission content is required.")

    submission = (
        db.query(Submission)
        .filter(Submission.user_id == user_id, Submission.task_id == task_id)
        .first()
    )
    was_graded = False
    if submission:
        was_graded = submission.status == SUBMISSION_GRADED
        submission.content = content
        submission.status = SUBMISSION_SUBMITTED
        submission.score = None
        submission.feedback = None
        submission.graded_by = None
        submission.graded_at = None
        submission.submitted_at = datetime.now(timezone.utc)
    else:
        submission = Submission(user_id=user_id, task_id=task_id, content=content, status=SUBMISSION_SUBMITTED)
        db.add(submission)

    if was_graded:
        refresh_score_cache(db, user)
    db.flush()
    logger.info(f"User {user_id} submitted task {task_id} (submission {submission.id})")
    return submission

def _apply_grade(db: Session, submission_id: int, score: int, feedback: Optional[str], graded_by: Optional[int]) -> Submission:
    submission = get_submission(db, submission_id)
    task = get_task(db, submission.task_id)
    if isinstance(score, bool) or not isinstance(score, int) or score < 0:
        raise ValidationError("Score must be a non-negative integer.")
    if score > task.max_score:
        raise ValidationError(f"Score cannot exceed maximum score of {task.max_score}.")
    submission.score = score
    submission.feedback = feedback
    submission.status = SUBMISSION_GRADED
    submission.graded_by = graded_by
    submission.graded_at = datetime.now(timezone.utc)
    refresh_score_cache(db, require_user(db, submission.user_id))
    return submission

@atomic("grade_submission")
def grade_submission(
    db: Session,
    submission_id: int,
    score: int,
    feedback: Optional[str] = None,
    graded_by: Optional[int] = None,
) -> Submission:
    """
    grade-assigned: выставить оценку (0..max_score) и пересчитать счёт участника.
    """
    submission = _apply_grade(db, submission_id, score, feedback, graded_by)
    logger.info(f"Graded submission {submission_id}: {score}")
    return submission

@atomic("update_grade")
def update_grade(
    db: Session,
    submission_id: int,
    score: int,
    feedback: Optional[str] = None,
    graded_by: Optional[int] = None,
) -> Submission:
    submission = get_submission(db, submission_id)
    if submission.status != SUBMISSION_GRADED:
        raise ValidationError("Submission has not been graded yet.")
    old_score = submission.score
    submission = _apply_grade(db, submission_id, score, feedback, graded_by)
    logger.info(f"Regraded submission {submission_id}: {old_score} -> {score}")
    return submission

@atomic("remove_grade")
def remove_grade(db: Session, submission_id: int) -> Submission:
    """
    Снять оценку: сдача возвращается в статус submitted, счёт пересчитывается.
    """
    submission = get_submission(db, submission_id)
    submission.status = SUBMISSION_SUBMITTED
    submission.score = None
    submission.feedback = None
    submission.graded_by = None
    submission.graded_at = None
    refresh_score_cache(db, require_user(db, submission.user_id))
    logger.info(f"Removed grade from submission {submission_id}")
    return submission

@atomic("delete_submission")
def delete_submission(db: Session, submission_id: int) -> bool:
    """
    submission-deleted: удалить сдачу и пересчитать счёт владельца.
    """
    submission = get_submission(db, submission_id)
    user = require_user(db, submission.user_id)
    db.delete(submission)
    refresh_score_cache(db, user)
    logger.info(f"Deleted submission {submission_id} of user {user.id}")
    return True
