import json
from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from git_copycat import __version__
from git_copycat.config import Config
from git_copycat.errors import GitCommandError, GitHubAPIError
from git_copycat.git_copycat import build_plan, main, prepare_target, sync, write_commits
from git_copycat.github import ContributionDay
from git_copycat.plan import CommitPlanEntry

MODULE = "git_copycat.git_copycat"


def make_config(**kwargs):
    values = dict(
        github_token="tok",
        source_username="octocat",
        from_date=date(2024, 1, 1),
        to_date=date(2024, 1, 31),
        target_repo_path="/tmp/mirror",
    )
    values.update(kwargs)
    return Config(**values)


CONTRIBUTIONS = [ContributionDay("2024-01-01", 3), ContributionDay("2024-01-05", 1)]


@pytest.fixture
def pipeline():
    """Patch every external collaborator of the sync pipeline."""
    with patch(f"{MODULE}.clone_repo") as clone, patch(
        f"{MODULE}.ensure_repo", return_value=False
    ) as ensure, patch(f"{MODULE}.configure_git") as configure, patch(
        f"{MODULE}.fetch_contributions", return_value=CONTRIBUTIONS
    ) as fetch, patch(
        f"{MODULE}.get_existing_commit_counts", return_value={"2024-01-01": 1}
    ) as existing, patch(
        f"{MODULE}.create_commits_for_day"
    ) as create, patch(
        f"{MODULE}.push_to_remote", return_value="main"
    ) as push, patch(
        f"{MODULE}.remove_clone"
    ) as remove:
        clone.return_value = "/tmp/clone"
        yield MagicMock(
            clone=clone,
            ensure=ensure,
            configure=configure,
            fetch=fetch,
            existing=existing,
            create=create,
            push=push,
            remove=remove,
        )


# --- stages ---

class TestStages:
    def test_prepare_local_target(self, pipeline, capsys):
        assert prepare_target(make_config()) == "/tmp/mirror"
        pipeline.clone.assert_not_called()
        pipeline.ensure.assert_called_once_with("/tmp/mirror")
        pipeline.configure.assert_not_called()

    def test_prepare_remote_target_with_identity(self, pipeline, capsys):
        config = make_config(
            target_repo_path=None,
            target_repo_url="https://github.com/me/mirror.git",
            git_user_name="Bot",
            git_user_email="bot@example.com",
        )
        assert prepare_target(config) == "/tmp/clone"
        pipeline.clone.assert_called_once_with("https://github.com/me/mirror.git", "tok")
        pipeline.ensure.assert_called_once_with("/tmp/clone")
        pipeline.configure.assert_called_once_with("/tmp/clone", "Bot", "bot@example.com")

    def test_build_plan(self, pipeline, capsys):
        plan = build_plan(make_config(), "/tmp/mirror")
        assert plan == [
            CommitPlanEntry("2024-01-01", 3, 1, 2),
            CommitPlanEntry("2024-01-05", 1, 0, 1),
        ]
        pipeline.fetch.assert_called_once_with(
            "tok", "octocat", date(2024, 1, 1), date(2024, 1, 31)
        )

    def test_write_commits_in_order(self, pipeline):
        plan = [CommitPlanEntry("2024-01-01", 2, 0, 2), CommitPlanEntry("2024-01-05", 1, 0, 1)]

        def fake_create(repo, day, count, on_commit=None):
            for _ in range(count):
                on_commit(day)

        pipeline.create.side_effect = fake_create
        progress = []
        assert write_commits("/repo", plan, on_commit=lambda n, d: progress.append((n, d))) == 3
        assert [c[0][1] for c in pipeline.create.call_args_list] == ["2024-01-01", "2024-01-05"]
        assert progress == [(1, "2024-01-01"), (2, "2024-01-01"), (3, "2024-01-05")]


# --- sync ---

class TestSync:
    def test_creates_missing_commits(self, pipeline, capsys):
        code = sync(make_config(), confirm=lambda message: True)
        assert code == 0
        assert [c[0] for c in pipeline.create.call_args_list] == [
            ("/tmp/mirror", "2024-01-01", 2),
            ("/tmp/mirror", "2024-01-05", 1),
        ]
        pipeline.push.assert_not_called()
        out = capsys.readouterr().out
        assert "Created 3 commits" in out
        assert "--push or AUTO_PUSH=true" in out
        pipeline.remove.assert_not_called()

    def test_already_in_sync(self, pipeline, capsys):
        pipeline.existing.return_value = {"2024-01-01": 3, "2024-01-05": 4}
        assert sync(make_config(), confirm=lambda message: True) == 0
        pipeline.create.assert_not_called()
        assert "Already in sync!" in capsys.readouterr().out

    def test_dry_run(self, pipeline, capsys):
        confirm = MagicMock()
        assert sync(make_config(dry_run=True), confirm=confirm) == 0
        pipeline.create.assert_not_called()
        confirm.assert_not_called()
        out = capsys.readouterr().out
        assert "Dry run mode" in out
        assert "--dry-run or DRY_RUN=true" in out
        assert "2024-01-05" in out

    def test_cancelled(self, pipeline, capsys):
        confirm = MagicMock(return_value=False)
        assert sync(make_config(), confirm=confirm) == 0
        confirm.assert_called_once_with("About to create 3 commits.")
        pipeline.create.assert_not_called()
        assert "Cancelled by user" in capsys.readouterr().out

    def test_ci_skips_prompt(self, pipeline, capsys):
        with patch(f"{MODULE}.ui.confirm_proceed") as prompt:
            assert sync(make_config(ci=True)) == 0
        prompt.assert_not_called()
        assert pipeline.create.call_count == 2
        assert "CI mode" in capsys.readouterr().out

    def test_auto_push(self, pipeline, capsys):
        config = make_config(auto_push=True, push_remote="upstream")
        assert sync(config, confirm=lambda message: True) == 0
        pipeline.push.assert_called_once_with("/tmp/mirror", "upstream", None)
        assert "Pushed main to upstream" in capsys.readouterr().out

    def test_push_failure_keeps_commits(self, pipeline, capsys):
        pipeline.push.side_effect = GitCommandError(["git", "push"], 1, "rejected")
        assert sync(make_config(auto_push=True), confirm=lambda message: True) == 1
        assert pipeline.create.call_count == 2
        assert "local commits were kept" in capsys.readouterr().err

    def test_remote_clone_removed_after_push(self, pipeline, capsys):
        config = make_config(
            target_repo_path=None,
            target_repo_url="https://github.com/me/mirror.git",
            auto_push=True,
        )
        assert sync(config, confirm=lambda message: True) == 0
        pipeline.push.assert_called_once()
        pipeline.remove.assert_called_once_with("/tmp/clone")

    def test_remote_clone_removed_when_in_sync(self, pipeline, capsys):
        pipeline.existing.return_value = {"2024-01-01": 3, "2024-01-05": 1}
        config = make_config(
            target_repo_path=None, target_repo_url="https://github.com/me/mirror.git"
        )
        assert sync(config, confirm=lambda message: True) == 0
        pipeline.remove.assert_called_once_with("/tmp/clone")

    def test_remote_clone_with_unpushed_commits_is_kept(self, pipeline, capsys):
        config = make_config(
            target_repo_path=None, target_repo_url="https://github.com/me/mirror.git"
        )
        assert sync(config, confirm=lambda message: True) == 0
        pipeline.remove.assert_not_called()
        assert "Local clone kept at /tmp/clone" in capsys.readouterr().out

    def test_remote_clone_kept_when_push_fails(self, pipeline, capsys):
        pipeline.push.side_effect = GitCommandError(["git", "push"], 1, "rejected")
        config = make_config(
            target_repo_path=None,
            target_repo_url="https://github.com/me/mirror.git",
            auto_push=True,
        )
        assert sync(config, confirm=lambda message: True) == 1
        pipeline.remove.assert_not_called()
        assert "/tmp/clone" in capsys.readouterr().out

    def test_commit_failure_aborts(self, pipeline, capsys):
        pipeline.create.side_effect = GitCommandError(["git", "commit"], 1, "boom")
        with pytest.raises(GitCommandError):
            sync(make_config(auto_push=True), confirm=lambda message: True)
        assert pipeline.create.call_count == 1
        pipeline.push.assert_not_called()

    def test_fetch_failure_aborts_before_inventory(self, pipeline, capsys):
        pipeline.fetch.side_effect = GitHubAPIError("Bad credentials")
        with pytest.raises(GitHubAPIError):
            sync(make_config(), confirm=lambda message: True)
        pipeline.existing.assert_not_called()


# --- main CLI ---

ENV = {
    "GITHUB_TOKEN": "tok",
    "SOURCE_USERNAME": "octocat",
    "TARGET_REPO_PATH": "/tmp/mirror",
}



@pytest.fixture
def environ():
    with patch.dict("os.environ", ENV, clear=True), patch(
        "git_copycat.config.load_dotenv"
    ):
        yield


class TestMainCLI:
    def test_version_flag(self, capsys):
        main(["-V"])
        out = capsys.readouterr().out
        assert "git-copycat" in out
        assert __version__ in out

    def test_missing_config_exits_nonzero(self, capsys):
        with patch.dict("os.environ", {}, clear=True), patch(
            "git_copycat.config.load_dotenv"
        ), patch(f"{MODULE}.sync") as run:
            with pytest.raises(SystemExit) as excinfo:
                main([])
        assert excinfo.value.code == 1
        run.assert_not_called()
        assert "GITHUB_TOKEN" in capsys.readouterr().err

    def test_flags_override_environment(self, environ):
        with patch(f"{MODULE}.sync", return_value=0) as run:
            main(["-u", "hubot", "--url", "https://github.com/me/m.git", "-n", "-y", "--push"])
        config = run.call_args[0][0]
        assert config.source_username == "hubot"
        assert config.target_repo_url == "https://github.com/me/m.git"
        assert not config.target_repo_path
        assert config.dry_run and config.ci and config.auto_push

    def test_dates(self, environ):
        with patch(f"{MODULE}.sync", return_value=0) as run:
            main(["-s", "2024-02-01", "--until", "2024-02-29"])
        config = run.call_args[0][0]
        assert config.from_date == date(2024, 2, 1)
        assert config.to_date == date(2024, 2, 29)

    def test_success_returns_normally(self, environ):
        with patch(f"{MODULE}.sync", return_value=0):
            assert main([]) is None

    def test_failure_exit_code(self, environ, capsys):
        with patch(f"{MODULE}.sync", side_effect=GitHubAPIError("Bad credentials")):
            with pytest.raises(SystemExit) as excinfo:
                main([])
        assert excinfo.value.code == 1
        assert "Bad credentials" in capsys.readouterr().err

    def test_push_failure_exit_code(self, environ):
        with patch(f"{MODULE}.sync", return_value=1):
            with pytest.raises(SystemExit) as excinfo:
                main([])
        assert excinfo.value.code == 1

    def test_interrupt(self, environ, capsys):
        with patch(f"{MODULE}.sync", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as excinfo:
                main([])
        assert excinfo.value.code == 130

    def test_json_output(self, environ, pipeline, capsys):
        main(["-o", "json"])
        out = capsys.readouterr().out
        assert json.loads(out) == [
            {"date": "2024-01-01", "needed": 3, "existing": 1, "to_create": 2},
            {"date": "2024-01-05", "needed": 1, "existing": 0, "to_create": 1},
        ]
        pipeline.create.assert_not_called()

    def test_csv_output(self, environ, pipeline, capsys):
        main(["-o", "csv"])
        lines = capsys.readouterr().out.strip().split("\n")
        assert lines[0] == "date,needed,existing,to_create"
        assert lines[1:] == ["2024-01-01,3,1,2", "2024-01-05,1,0,1"]

    def test_export_removes_remote_clone(self, pipeline, capsys):
        env = dict(ENV, TARGET_REPO_PATH="", TARGET_REPO_URL="https://github.com/me/m.git")
        with patch.dict("os.environ", env, clear=True), patch("git_copycat.config.load_dotenv"):
            main(["-o", "json"])
        pipeline.remove.assert_called_once_with("/tmp/clone")
        assert json.loads(capsys.readouterr().out)[0]["date"] == "2024-01-01"
