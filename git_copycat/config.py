import os
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from dotenv import load_dotenv

from git_copycat.errors import ConfigError

TRUTHY = ("true", "1", "yes", "on")


@dataclass(frozen=True)
class Config:
    """Settings for one sync run, collected once at startup."""

    github_token: str = field(repr=False)
    source_username: str
    from_date: date
    to_date: date
    target_repo_path: Optional[str] = None
    target_repo_url: Optional[str] = None
    dry_run: bool = False
    auto_push: bool = False
    ci: bool = False
    git_user_name: Optional[str] = None
    git_user_email: Optional[str] = None
    push_remote: str = "origin"
    push_branch: Optional[str] = None

    @property
    def has_identity(self):
        return bool(self.git_user_name and self.git_user_email)


def parse_bool(value):
    """Interpret an environment flag; unset means False."""
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY


def parse_date(value, name):
    """Parse an ISO date (or datetime) string into a date."""
    try:
        return datetime.fromisoformat(value.strip()).date()
    except (ValueError, AttributeError):
        raise ConfigError(f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}")


def one_year_before(day):
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        # Feb 29 -> Feb 28
        return day.replace(year=day.year - 1, day=28)


def load_config(environ=None, overrides=None, env_file=None, today=None):
    """Build a Config from a .env file, the environment and CLI overrides.

    Values in ``overrides`` that are None are ignored so argparse defaults
    never mask the environment. Raises ConfigError before any I/O happens.
    """
    if environ is None:
        load_dotenv(env_file)
        environ = os.environ
    values = {key: value for key, value in environ.items() if value != ""}
    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    github_token = values.get("GITHUB_TOKEN")
    source_username = values.get("SOURCE_USERNAME")
    target_repo_path = values.get("TARGET_REPO_PATH")
    target_repo_url = values.get("TARGET_REPO_URL")

    if not github_token:
        raise ConfigError("GITHUB_TOKEN environment variable is required")
    if not source_username:
        raise ConfigError("SOURCE_USERNAME environment variable is required")
    if not target_repo_path and not target_repo_url:
        raise ConfigError(
            "Either TARGET_REPO_PATH or TARGET_REPO_URL environment variable is required"
        )
    if target_repo_path and target_repo_url:
        raise ConfigError("TARGET_REPO_PATH and TARGET_REPO_URL are mutually exclusive")

    today = today or date.today()
    to_date = today
    from_date = one_year_before(today)
    if values.get("FROM_DATE"):
        from_date = parse_date(values["FROM_DATE"], "FROM_DATE")
    if values.get("TO_DATE"):
        to_date = parse_date(values["TO_DATE"], "TO_DATE")
    if from_date > to_date:
        raise ConfigError(
            f"FROM_DATE ({from_date.isoformat()}) is after TO_DATE ({to_date.isoformat()})"
        )

    git_user_name = values.get("GIT_USER_NAME")
    git_user_email = values.get("GIT_USER_EMAIL")
    if bool(git_user_name) != bool(git_user_email):
        raise ConfigError("GIT_USER_NAME and GIT_USER_EMAIL must be set together")

    return Config(
        github_token=github_token,
        source_username=source_username,
        from_date=from_date,
        to_date=to_date,
        target_repo_path=target_repo_path,
        target_repo_url=target_repo_url,
        dry_run=parse_bool(values.get("DRY_RUN")),
        auto_push=parse_bool(values.get("AUTO_PUSH")),
        ci=parse_bool(values.get("CI")),
        git_user_name=git_user_name,
        git_user_email=git_user_email,
        push_remote=values.get("PUSH_REMOTE", "origin"),
        push_branch=values.get("PUSH_BRANCH"),
    )
