"""GitHub contribution calendar client."""

from dataclasses import dataclass
from datetime import datetime, time, timedelta

import requests

from git_copycat.errors import GitHubAPIError

GRAPHQL_URL = "https://api.github.com/graphql"
REQUEST_TIMEOUT = 30
# contributionsCollection rejects windows longer than a year
MAX_WINDOW_DAYS = 365

CONTRIBUTIONS_QUERY = """
query($username: String!, $from: DateTime!, $to: DateTime!) {
  user(login: $username) {
    contributionsCollection(from: $from, to: $to) {
      contributionCalendar {
        weeks {
          contributionDays {
            date
            contributionCount
          }
        }
      }
    }
  }
}
"""


@dataclass(frozen=True)
class ContributionDay:
    date: str
    count: int


def split_date_range(from_date, to_date, max_days=MAX_WINDOW_DAYS):
    """Split an inclusive date range into consecutive windows of at most max_days."""
    windows = []
    start = from_date
    while start <= to_date:
        end = min(to_date, start + timedelta(days=max_days - 1))
        windows.append((start, end))
        start = end + timedelta(days=1)
    return windows


class GitHubClient:
    """Minimal GraphQL client for reading contribution calendars."""

    def __init__(self, token, session=None):
        self.token = token
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
                "User-Agent": "git-copycat",
            }
        )

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        self.session.close()

    def _query(self, query, variables):
        try:
            response = self.session.post(
                GRAPHQL_URL,
                json={"query": query, "variables": variables},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise GitHubAPIError(f"GitHub API request failed: {e}") from e

        if response.status_code >= 400:
            raise GitHubAPIError(
                f"GitHub API returned HTTP {response.status_code}: {response.text[:500]}"
            )
        try:
            payload = response.json()
        except ValueError as e:
            raise GitHubAPIError("GitHub API returned invalid JSON") from e

        if payload.get("errors"):
            messages = "; ".join(
                error.get("message", str(error)) for error in payload["errors"]
            )
            raise GitHubAPIError(f"GitHub API error: {messages}")
        return payload.get("data") or {}

    def get_contribution_days(self, username, from_date, to_date):
        """Return the calendar days for one window of at most a year."""
        data = self._query(
            CONTRIBUTIONS_QUERY,
            {
                "username": username,
                "from": datetime.combine(from_date, time.min).isoformat() + "Z",
                "to": datetime.combine(to_date, time(23, 59, 59)).isoformat() + "Z",
            },
        )
        user = data.get("user")
        if user is None:
            raise GitHubAPIError(f"GitHub user '{username}' not found")

        weeks = user["contributionsCollection"]["contributionCalendar"]["weeks"]
        return [
            ContributionDay(day["date"], day["contributionCount"])
            for week in weeks
            for day in week["contributionDays"]
        ]

    def get_contributions(self, username, from_date, to_date):
        """Return days with at least one contribution, ordered by date."""
        first, last = from_date.isoformat(), to_date.isoformat()
        counts = {}
        for start, end in split_date_range(from_date, to_date):
            for day in self.get_contribution_days(username, start, end):
                if day.count > 0 and first <= day.date <= last:
                    counts[day.date] = day.count
        return [ContributionDay(date, counts[date]) for date in sorted(counts)]


def fetch_contributions(token, username, from_date, to_date, session=None):
    """Fetch a user's non-zero contribution days between two dates inclusive."""
    with GitHubClient(token, session=session) as client:
        return client.get_contributions(username, from_date, to_date)
