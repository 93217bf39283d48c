from .user import User
from .team import Team, TeamMember
from .problem_statement import ProblemStatement
from .vote import Vote
from .task import Task, Submission
from .attendance import Attendance
