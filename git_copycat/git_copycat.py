import argparse
import sys

from git_copycat import __version__
from git_copycat import ui
from git_copycat.config import load_config
from git_copycat.errors import CopycatError, GitCommandError
from git_copycat.git import (
    clone_repo,
    configure_git,
    create_commits_for_day,
    ensure_repo,
    get_existing_commit_counts,
    push_to_remote,
    remove_clone,
)
from git_copycat.github import fetch_contributions
from git_copycat.plan import calculate_commit_plan, contributions_to_map, total_commits


def prepare_target(config, quiet=False):
    """Clone or locate the target repository and make it ready for commits."""
    if config.target_repo_url:
        if not quiet:
            ui.print_step(f"Cloning {config.target_repo_url}...")
        repo_path = clone_repo(config.target_repo_url, config.github_token)
        if not quiet:
            ui.print_success("Repository cloned")
    else:
        repo_path = config.target_repo_path

    if not quiet:
        ui.print_config(config, repo_path)
        ui.print_divider()
        ui.print_step("Checking target repository...")
    created = ensure_repo(repo_path)
    if not quiet:
        if created:
            ui.print_info(f"Initialized new git repository at {repo_path}")
        ui.print_success("Target repository ready")

    if config.has_identity:
        configure_git(repo_path, config.git_user_name, config.git_user_email)
    return repo_path


def build_plan(config, repo_path, quiet=False):
    """Fetch desired counts, read existing ones and reconcile them."""
    if not quiet:
        ui.print_step(f"Fetching contributions for {config.source_username}...")
    contributions = fetch_contributions(
        config.github_token, config.source_username, config.from_date, config.to_date
    )
    if not quiet:
        ui.print_success(f"Found {len(contributions)} days with contributions")
        ui.print_step("Analyzing existing commits...")
    existing = get_existing_commit_counts(repo_path)
    if not quiet:
        ui.print_success(f"Found commits on {len(existing)} days")

    return calculate_commit_plan(contributions_to_map(contributions), existing)


def write_commits(repo_path, plan, on_commit=None):
    """Create every planned commit in plan order; the first failure aborts."""
    created = 0

    def advance(date):
        nonlocal created
        created += 1
        if on_commit:
            on_commit(created, date)

    for entry in plan:
        create_commits_for_day(repo_path, entry.date, entry.to_create, on_commit=advance)
    return created


def sync(config, confirm=None):
    """Run the whole sync with terminal output. Returns the exit code.

    A temporary clone is removed at the end unless it holds commits that
    were not pushed, in which case its path is reported.
    """
    if confirm is None:
        confirm = ui.auto_confirm if config.ci else ui.confirm_proceed

    ui.print_banner()
    repo_path = prepare_target(config)
    keep_clone = True
    try:
        code, keep_clone = sync_repo(config, repo_path, confirm)
    finally:
        if config.target_repo_url:
            if keep_clone:
                ui.print_info(f"Local clone kept at {repo_path}")
            else:
                remove_clone(repo_path)
    return code


def sync_repo(config, repo_path, confirm):
    """Plan and write commits into a prepared repository.

    Returns the exit code and whether the repository holds unpushed commits.
    """
    plan = build_plan(config, repo_path)

    if not plan:
        ui.print_synced_message()
        return 0, False

    total = total_commits(plan)
    ui.print_plan_header(total, len(plan))
    for entry in plan:
        ui.print_plan_item(entry)
    print()
    ui.print_divider()

    if config.dry_run:
        print()
        ui.print_warning("Dry run mode - no commits created")
        ui.print_info("Run without --dry-run or DRY_RUN=true to create commits")
        print()
        return 0, False

    if config.ci:
        ui.print_info("CI mode - skipping confirmation")
    if not confirm(f"About to create {total} commits."):
        print()
        ui.print_info("Cancelled by user")
        print()
        return 0, False

    print()
    progress = ui.create_progress_bar()
    progress.start(total, 0, plan[0].date)
    try:
        write_commits(repo_path, plan, on_commit=progress.update)
    finally:
        progress.stop()
    print()
    ui.print_success(f"Created {total} commits")

    print()
    if config.auto_push:
        ui.print_step("Pushing to remote...")
        try:
            branch = push_to_remote(repo_path, config.push_remote, config.push_branch)
        except GitCommandError as e:
            ui.print_error(f"Push failed, local commits were kept: {e}")
            return 1, True
        ui.print_success(f"Pushed {branch} to {config.push_remote}")
    else:
        ui.print_info("Run with --push or AUTO_PUSH=true to push automatically")
    print()
    return 0, not config.auto_push


def export_plan(config, output):
    """Print the plan as JSON or CSV without creating any commits."""
    repo_path = prepare_target(config, quiet=True)
    try:
        plan = build_plan(config, repo_path, quiet=True)
    finally:
        if config.target_repo_url:
            remove_clone(repo_path)
    if output == "json":
        print(ui.plan_to_json(plan))
    else:
        print(ui.plan_to_csv(plan), end="")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="git-copycat",
        description="Mirror a GitHub contribution calendar into a git repository",
    )
    parser.add_argument("-u", "--username", help="GitHub user whose calendar to copy")
    target = parser.add_mutually_exclusive_group()
    target.add_argument("-p", "--path", help="Local target repository path")
    target.add_argument("--url", help="Remote target repository URL to clone")
    parser.add_argument("-s", "--since", help="First day to sync (YYYY-MM-DD)")
    parser.add_argument("--until", help="Last day to sync (YYYY-MM-DD)")
    parser.add_argument(
        "-n", "--dry-run", action="store_true", help="Show the plan, create nothing"
    )
    parser.add_argument(
        "--push", action="store_true", help="Push after creating commits"
    )
    parser.add_argument(
        "-y", "--yes", action="store_true", help="Skip the confirmation prompt"
    )
    parser.add_argument(
        "-o",
        "--output",
        choices=["text", "json", "csv"],
        default="text",
        help="Output format; json and csv only print the plan",
    )
    parser.add_argument("--env-file", help="Read settings from this .env file")
    parser.add_argument(
        "-V", "--version", action="store_true", help="Show version and exit"
    )

    args = parser.parse_args(argv)

    if args.version:
        print(f"git-copycat {__version__}")
        return

    overrides = {
        "SOURCE_USERNAME": args.username,
        "TARGET_REPO_PATH": args.path,
        "TARGET_REPO_URL": args.url,
        "FROM_DATE": args.since,
        "TO_DATE": args.until,
        "DRY_RUN": "true" if args.dry_run else None,
        "AUTO_PUSH": "true" if args.push else None,
        "CI": "true" if args.yes else None,
    }
    # a flag for one target replaces the other one from the environment
    if args.path:
        overrides["TARGET_REPO_URL"] = ""
    if args.url:
        overrides["TARGET_REPO_PATH"] = ""

    try:
        config = load_config(overrides=overrides, env_file=args.env_file)
        if args.output == "text":
            code = sync(config)
        else:
            code = export_plan(config, args.output)
    except CopycatError as e:
        ui.print_error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        print()
        ui.print_error("Interrupted")
        sys.exit(130)

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
