#cohorthub/crud/vote.py
"""
Vote Ledger: один голос на пару (voter, team), без голосов за свою команду.

Проверка «своя команда» читает текущее членство внутри единицы работы и
обновляет строку голосующего (last_voted_at) с проверкой version: если
членство изменилось между чтением и commit, попытка повторяется с новым
чтением, и устаревшее членство не может пропустить голос за свою команду.
"""

from datetime import datetime, timezone
from typing import List, NamedTuple, Optional, Dict, Any
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cohorthub.core.concurrency import atomic
from cohorthub.core.exceptions import (
    BaseAppException,
    DuplicateVoteError,
    InvalidRatingError,
    NotInTeamError,
    SelfVoteError,
    TeamNotFound,
    ValidationError,
    VoteNotFound,
)
from cohorthub.core.settings import settings
from cohorthub.crud.team import current_team_id
from cohorthub.crud.user import require_user
from cohorthub.models.team import Team
from cohorthub.models.vote import Vote

logger = logging.getLogger("CohortHub.Votes")

MIN_RATING = 1
MAX_RATING = 5

class VotingProgress(NamedTuple):
    voted_count: int
    total_count: int

    @property
    def completed(self) -> bool:
        return self.total_count > 0 and self.voted_count == self.total_count

def _duplicate_vote(e: IntegrityError) -> BaseAppException:
    message = str(e.orig).lower()
    if "votes" in message:
        return DuplicateVoteError()
    return ValidationError(f"Database constraint violated: {e.orig}")

def validate_rating(rating) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidRatingError(f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}.")
    return rating

def validate_comment(comment: Optional[str]) -> str:
    comment = (comment or "").strip()
    if not comment:
        raise ValidationError("Please provide a comment for your vote.")
    if len(comment) > settings.VOTE_COMMENT_MAX_LENGTH:
        raise ValidationError(f"Comment must be at most {settings.VOTE_COMMENT_MAX_LENGTH} characters.")
    return comment

def get_vote(db: Session, voter_id: int, team_id: int) -> Optional[Vote]:
    return db.query(Vote).filter(Vote.voter_id == voter_id, Vote.team_id == team_id).first()

@atomic("submit_vote", on_integrity_error=_duplicate_vote)
def submit_vote(db: Session, voter_id: int, team_id: int, rating: int, comment: str) -> Vote:
    """
    Проголосовать за команду. Существующий голос правится через update_vote.
    """
    voter = require_user(db, voter_id)
    voter_team_id = current_team_id(db, voter_id)
    if voter_team_id is None:
        raise NotInTeamError("You must be part of a team to vote for other teams.")
    if voter_team_id == team_id:
        raise SelfVoteError()
    rating = validate_rating(rating)
    comment = validate_comment(comment)
    if db.query(Team.id).filter(Team.id == team_id, Team.is_active.is_(True)).first() is None:
        raise TeamNotFound(f"Team with id={team_id} not found.")
    if get_vote(db, voter_id, team_id) is not None:
        raise DuplicateVoteError()

    vote = Vote(
        voter_id=voter_id,
        team_id=team_id,
        voter_team_id=voter_team_id,
        rating=rating,
        comment=comment,
    )
    db.add(vote)
    # version-проверка строки голосующего: членство не менялось с момента чтения
    voter.last_voted_at = datetime.now(timezone.utc)
    db.flush()
    logger.info(f"User {voter_id} (team {voter_team_id}) voted {rating} for team {team_id}")
    return vote

@atomic("update_vote")
def update_vote(db: Session, voter_id: int, team_id: int, rating: int, comment: str) -> Vote:
    """
    Перезаписать оценку и комментарий; id и created_at не меняются.
    """
    vote = get_vote(db, voter_id, team_id)
    if vote is None:
        raise VoteNotFound("Vote not found.")
    vote.rating = validate_rating(rating)
    vote.comment = validate_comment(comment)
    vote.updated_at = datetime.now(timezone.utc)
    logger.info(f"User {voter_id} updated vote for team {team_id} to {vote.rating}")
    return vote

@atomic("delete_vote")
def delete_vote(db: Session, voter_id: int, team_id: int) -> bool:
    vote = get_vote(db, voter_id, team_id)
    if vote is None:
        raise VoteNotFound("Vote not found.")
    db.delete(vote)
    logger.info(f"User {voter_id} deleted vote for team {team_id}")
    return True

def vote_completion_status(db: Session, voter_id: int) -> VotingProgress:
    """
    (voted_count, total_count) по всем другим активным командам. Не кэшируется:
    число команд меняется, когда команды распускаются.
    """
    own_team_id = current_team_id(db, voter_id)
    other_teams = db.query(Team.id).filter(Team.is_active.is_(True))
    if own_team_id is not None:
        other_teams = other_teams.filter(Team.id != own_team_id)
    other_team_ids = [row.id for row in other_teams]
    if not other_team_ids:
        return VotingProgress(0, 0)
    voted = (
        db.query(func.count(Vote.id))
        .filter(Vote.voter_id == voter_id, Vote.team_id.in_(other_team_ids))
        .scalar()
    )
    return VotingProgress(voted, len(other_team_ids))

def get_team_rating(db: Session, team_id: int) -> Dict[str, Any]:
    """
    Средняя оценка (округление до 0.1) и число голосов; 0/0, если голосов нет.
    """
    average, total = (
        db.query(func.avg(Vote.rating), func.count(Vote.id)).filter(Vote.team_id == team_id).one()
    )
    if not total:
        return {"average_rating": 0.0, "total_votes": 0}
    return {"average_rating": round(float(average), 1), "total_votes": total}

def get_team_votes(db: Session, team_id: int) -> List[Vote]:
    if db.query(Team.id).filter(Team.id == team_id).first() is None:
        raise TeamNotFound(f"Team with id={team_id} not found.")
    return (
        db.query(Vote)
        .filter(Vote.team_id == team_id)
        .order_by(Vote.created_at.desc(), Vote.id.desc())
        .all()
    )

def get_voting_history(db: Session, voter_id: int) -> List[Vote]:
    return (
        db.query(Vote)
        .filter(Vote.voter_id == voter_id)
        .order_by(Vote.created_at.desc(), Vote.id.desc())
        .all()
    )

def get_teams_with_ratings(db: Session, voter_id: int, search: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Все активные команды с рейтингом и отметкой «уже голосовал». Доступно только участникам команд.
    """
    own_team_id = current_team_id(db, voter_id)
    if own_team_id is None:
        raise NotInTeamError("You must be part of a team to access voting.")

    query = db.query(Team).filter(Team.is_active.is_(True))
    if search:
        val = f"%{search}%"
        query = query.filter(Team.name.ilike(val) | Team.description.ilike(val))
    teams = query.order_by(Team.created_at.desc(), Team.id.desc()).all()

    voted_ids = {row.team_id for row in db.query(Vote.team_id).filter(Vote.voter_id == voter_id)}
    results = []
    for team in teams:
        rating = get_team_rating(db, team.id)
        results.append({
            "team": team,
            "average_rating": rating["average_rating"],
            "total_votes": rating["total_votes"],
            "is_own_team": team.id == own_team_id,
            "has_voted": team.id in voted_ids,
        })
    return results
