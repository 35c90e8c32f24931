"""git-copycat: mirror a GitHub contribution calendar into a git repository."""

__version__ = "0.1.0"
__license__ = "MIT"

from git_copycat.git_copycat import main
from git_copycat.plan import CommitPlanEntry, calculate_commit_plan

__all__ = ["main", "calculate_commit_plan", "CommitPlanEntry"]
