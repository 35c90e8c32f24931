"""Thin wrappers around the git command line used by a sync run."""

import os
import shutil
import subprocess
import tempfile
from collections import defaultdict
from urllib.parse import urlsplit, urlunsplit

from git_copycat.errors import GitCommandError

NOON = "12:00:00"


def run_git(args, repo_path=None, env=None):
    """Run a git command and return its stdout.

    Raises GitCommandError when git exits with a non-zero status.
    """
    cmd = ["git"]
    if repo_path is not None:
        cmd.extend(["-C", str(repo_path)])
    cmd.extend(args)

    full_env = None
    if env:
        full_env = os.environ.copy()
        full_env.update(env)

    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, check=True, env=full_env
        )
    except subprocess.CalledProcessError as e:
        raise GitCommandError(cmd, e.returncode, e.stderr) from e
    return result.stdout


def has_commits(repo_path):
    """Return True if HEAD resolves to a commit."""
    try:
        run_git(["rev-parse", "--verify", "--quiet", "HEAD"], repo_path)
    except GitCommandError as e:
        # exit code 1 is an unborn HEAD, anything else is a real failure
        if e.returncode == 1:
            return False
        raise
    return True


def get_existing_commit_counts(repo_path):
    """Count commits reachable from HEAD per committer date (YYYY-MM-DD).

    An empty or freshly initialized repository yields an empty mapping; any
    other read failure raises GitCommandError.
    """
    if not has_commits(repo_path):
        return {}

    output = run_git(["log", "--format=%cd", "--date=short"], repo_path)
    counts = defaultdict(int)
    for line in output.splitlines():
        day = line.strip()
        if day:
            counts[day] += 1
    return dict(counts)


def commit_message(date, index, count):
    return f"Contribution sync: {date} ({index}/{count})"


def create_backdated_commit(repo_path, date, message):
    """Create one empty commit authored and committed at noon on ``date``."""
    timestamp = f"{date}T{NOON}"
    run_git(
        ["commit", "--allow-empty", "--quiet", "-m", message, "--date", timestamp],
        repo_path,
        env={"GIT_AUTHOR_DATE": timestamp, "GIT_COMMITTER_DATE": timestamp},
    )


def create_commits_for_day(repo_path, date, count, on_commit=None):
    """Create ``count`` commits for ``date``, one after another."""
    for i in range(1, count + 1):
        create_backdated_commit(repo_path, date, commit_message(date, i, count))
        if on_commit:
            on_commit(date)


def ensure_repo(repo_path):
    """Initialize a repository at ``repo_path`` unless it is already a work tree root.

    A directory nested inside another repository gets its own repository.
    Returns True when a new repository was created.
    """
    os.makedirs(repo_path, exist_ok=True)
    try:
        toplevel = run_git(["rev-parse", "--show-toplevel"], repo_path).strip()
    except GitCommandError:
        toplevel = None
    if toplevel and os.path.realpath(toplevel) == os.path.realpath(repo_path):
        return False
    run_git(["init", "--quiet"], repo_path)
    return True


def authenticated_url(url, token):
    """Embed ``token`` into an https clone URL; other schemes are left alone."""
    parts = urlsplit(url)
    if parts.scheme != "https" or not token or "@" in parts.netloc:
        return url
    netloc = f"x-access-token:{token}@{parts.netloc}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def clone_repo(url, token, dest=None):
    """Clone ``url`` into a fresh directory and return its path."""
    if dest is None:
        dest = tempfile.mkdtemp(prefix="git-copycat-")
    try:
        run_git(["clone", "--quiet", authenticated_url(url, token), str(dest)])
    except GitCommandError as e:
        if not token:
            raise
        # keep the token out of anything that gets printed
        cmd = [part.replace(token, "***") for part in e.cmd]
        raise GitCommandError(cmd, e.returncode, e.stderr.replace(token, "***")) from None
    return str(dest)


def remove_clone(repo_path):
    """Delete a working copy made by clone_repo."""
    shutil.rmtree(repo_path)


def configure_git(repo_path, name, email):
    """Set the commit identity for this repository only."""
    run_git(["config", "user.name", name], repo_path)
    run_git(["config", "user.email", email], repo_path)


def current_branch(repo_path):
    return run_git(["rev-parse", "--abbrev-ref", "HEAD"], repo_path).strip()


def push_to_remote(repo_path, remote="origin", branch=None):
    """Push ``branch`` (default: the checked-out branch) to ``remote``."""
    if branch is None:
        branch = current_branch(repo_path)
    run_git(["push", remote, branch], repo_path)
    return branch
