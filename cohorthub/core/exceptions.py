# cohorthub/core/exceptions.py

class BaseAppException(Exception):
    """Базовый класс для всех ошибок движка. `code` задаёт machine-readable вид ошибки."""
    code = "app_error"
    status_code = 400

    def __init__(self, message: str = "App exception", **details):
        super().__init__(message)
        self.message = message
        self.details = details or None

# ==== Валидация ====

class ValidationError(BaseAppException):
    """Общая ошибка валидации входных данных."""
    code = "validation_error"
    status_code = 422

    def __init__(self, message: str = "Validation error", **details):
        super().__init__(message, **details)

class InvalidRatingError(ValidationError):
    """Оценка вне диапазона [1, 5]."""
    code = "invalid_rating"

    def __init__(self, message: str = "Rating must be between 1 and 5", **details):
        super().__init__(message, **details)

# ==== NotFound ====

class NotFoundError(BaseAppException):
    """Ошибка отсутствия ресурса."""
    code = "not_found"
    status_code = 404

    def __init__(self, message: str = "Resource not found", **details):
        super().__init__(message, **details)

class UserNotFound(NotFoundError):
    def __init__(self, message: str = "User not found", **details):
        super().__init__(message, **details)

class TeamNotFound(NotFoundError):
    def __init__(self, message: str = "Team not found", **details):
        super().__init__(message, **details)

class ProblemStatementNotFound(NotFoundError):
    def __init__(self, message: str = "Problem statement not found", **details):
        super().__init__(message, **details)

class VoteNotFound(NotFoundError):
    def __init__(self, message: str = "Vote not found", **details):
        super().__init__(message, **details)

class TaskNotFound(NotFoundError):
    def __init__(self, message: str = "Task not found", **details):
        super().__init__(message, **details)

class SubmissionNotFound(NotFoundError):
    def __init__(self, message: str = "Submission not found", **details):
        super().__init__(message, **details)

class AttendanceNotFound(NotFoundError):
    def __init__(self, message: str = "Attendance record not found", **details):
        super().__init__(message, **details)

# ==== Авторизация ====

class ForbiddenError(BaseAppException):
    """Действие разрешено только лидеру команды (или иному владельцу)."""
    code = "forbidden"
    status_code = 403

    def __init__(self, message: str = "Forbidden", **details):
        super().__init__(message, **details)

class AuthError(BaseAppException):
    """Ошибка аутентификации."""
    code = "not_authenticated"
    status_code = 401

    def __init__(self, message: str = "Could not validate credentials", **details):
        super().__init__(message, **details)

# ==== Teams ====

class TeamError(BaseAppException):
    """Нарушение предусловия операции над командой."""
    code = "team_error"
    status_code = 409

    def __init__(self, message: str = "Team error", **details):
        super().__init__(message, **details)

class AlreadyTeamedError(TeamError):
    code = "already_teamed"

    def __init__(self, message: str = "User is already a member of a team", **details):
        super().__init__(message, **details)

class AlreadyMemberError(TeamError):
    code = "already_member"

    def __init__(self, message: str = "User is already a member of this team", **details):
        super().__init__(message, **details)

class NotMemberError(TeamError):
    code = "not_member"

    def __init__(self, message: str = "User is not a member of this team", **details):
        super().__init__(message, **details)

class TeamFullError(TeamError):
    code = "full"

    def __init__(self, message: str = "Team is already full", **details):
        super().__init__(message, **details)

class DuplicateTeamName(TeamError):
    code = "duplicate_name"

    def __init__(self, message: str = "Team name already exists", **details):
        super().__init__(message, **details)

class LeadershipTransferRequired(TeamError):
    code = "leadership_transfer_required"

    def __init__(self, message: str = "Leader must transfer leadership before leaving", **details):
        super().__init__(message, **details)

class InvalidTransferTarget(TeamError):
    code = "invalid_transfer_target"

    def __init__(self, message: str = "Transfer target is not another member of this team", **details):
        super().__init__(message, **details)

class CannotRemoveLeader(TeamError):
    code = "cannot_remove_leader"

    def __init__(self, message: str = "Cannot remove team leader", **details):
        super().__init__(message, **details)

# ==== Problem statements ====

class AtCapacityError(BaseAppException):
    """Проблема уже выбрана максимальным числом команд."""
    code = "at_capacity"
    status_code = 409

    def __init__(self, message: str = "Problem statement has reached its selection limit", **details):
        super().__init__(message, **details)

class CapacityCounterMismatch(BaseAppException):
    """Счётчик выборов разошёлся с составом выбравших команд; единица работы откатывается."""
    code = "capacity_counter_mismatch"
    status_code = 500

    def __init__(self, message: str = "Problem statement selection counter is out of sync", **details):
        super().__init__(message, **details)

# ==== Votes ====

class VoteError(BaseAppException):
    """Нарушение правил голосования."""
    code = "vote_error"
    status_code = 409

    def __init__(self, message: str = "Vote error", **details):
        super().__init__(message, **details)

class NotInTeamError(VoteError):
    code = "not_in_team"

    def __init__(self, message: str = "You must be part of a team to vote", **details):
        super().__init__(message, **details)

class SelfVoteError(VoteError):
    code = "self_vote"

    def __init__(self, message: str = "You cannot vote for your own team", **details):
        super().__init__(message, **details)

class DuplicateVoteError(VoteError):
    code = "duplicate_vote"

    def __init__(self, message: str = "You have already voted for this team", **details):
        super().__init__(message, **details)

# ==== Инфраструктура ====

class ContentionError(BaseAppException):
    """Оптимистичные повторы исчерпаны; вызывающий может повторить с backoff."""
    code = "contention"
    status_code = 409

    def __init__(self, message: str = "Concurrent update conflict, retry later", **details):
        super().__init__(message, **details)

class OperationTimeout(BaseAppException):
    """Операция не уложилась в отведённое время."""
    code = "timeout"
    status_code = 503

    def __init__(self, message: str = "Operation timed out", **details):
        super().__init__(message, **details)

class SourceReadFailure(BaseAppException):
    """Не удалось прочитать источники очков; кэш счёта не изменён."""
    code = "source_read_failure"
    status_code = 503

    def __init__(self, message: str = "Failed to read score sources", **details):
        super().__init__(message, **details)
