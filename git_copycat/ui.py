"""Terminal output for git-copycat."""

import codecs
import configparser
import csv
import io
import json
import os
import sys
from dataclasses import asdict

# Read color settings from config file, NO_COLOR turns them off
CONFIG_FILE = os.path.expanduser("~/.gitcopycatrc")
config = configparser.ConfigParser()
config.read(CONFIG_FILE)

DEFAULT_COLORS = {
    "reset": "\033[0m",
    "primary": "\033[0;36m",
    "success": "\033[0;32m",
    "warning": "\033[0;33m",
    "error": "\033[0;31m",
    "muted": "\033[0;90m",
    "highlight": "\033[1;37m",
    "accent": "\033[0;35m",
}


def load_colors(parser, environ=os.environ):
    if "NO_COLOR" in environ:
        return {name: "" for name in DEFAULT_COLORS}
    return {
        name: codecs.decode(parser.get("colors", name, fallback=default), "unicode_escape")
        for name, default in DEFAULT_COLORS.items()
    }


COLORS = load_colors(config)

SYMBOLS = {
    "success": "✔",
    "error": "✖",
    "warning": "⚠",
    "info": "ℹ",
    "arrow": "→",
    "bullet": "•",
}

PLAN_BAR_CAP = 20
PROGRESS_BAR_SIZE = 30


def paint(text, color):
    return f"{COLORS[color]}{text}{COLORS['reset']}"


def print_banner():
    title = "Git Copycat"
    subtitle = "Contribution Sync"
    width = max(len(title), len(subtitle)) + 6
    print()
    print(paint("  ╭" + "─" * width + "╮", "primary"))
    print(
        paint("  │", "primary")
        + paint(title.center(width), "highlight")
        + paint("│", "primary")
    )
    print(
        paint("  │", "primary")
        + paint(subtitle.center(width), "muted")
        + paint("│", "primary")
    )
    print(paint("  ╰" + "─" * width + "╯", "primary"))
    print()


def print_config(config, target_path):
    print(paint("  Configuration:", "muted"))
    print(f"    {SYMBOLS['bullet']} Source:  {paint(config.source_username, 'highlight')}")
    print(f"    {SYMBOLS['bullet']} Target:  {paint(target_path, 'muted')}")
    print(
        f"    {SYMBOLS['bullet']} Period:  {paint(config.from_date.isoformat(), 'accent')}"
        f" {paint(SYMBOLS['arrow'], 'primary')} {paint(config.to_date.isoformat(), 'accent')}"
    )
    if config.dry_run:
        print(f"    {SYMBOLS['bullet']} Mode:    {paint('DRY RUN', 'warning')}")
    print()


def print_plan_header(total, days):
    print()
    print(
        f"  {paint(SYMBOLS['info'], 'primary')} Plan: Create {paint(total, 'highlight')}"
        f" commits across {paint(days, 'highlight')} days"
    )
    print()


def print_plan_item(entry):
    bar = paint("█" * min(entry.to_create, PLAN_BAR_CAP), "primary")
    existing = paint(f" ({entry.existing} existing)", "muted") if entry.existing > 0 else ""
    count = paint(f"+{str(entry.to_create).rjust(2)}", "success")
    print(f"    {paint(entry.date, 'muted')}  {count}  {bar}{existing}")


def print_synced_message():
    print()
    print(
        f"  {paint(SYMBOLS['success'], 'success')} {paint('Already in sync!', 'success')}"
        " No commits needed."
    )
    print()


def print_success(message):
    print(f"  {paint(SYMBOLS['success'], 'success')} {paint(message, 'success')}")


def print_error(message):
    print(f"  {paint(SYMBOLS['error'], 'error')} {paint(message, 'error')}", file=sys.stderr)


def print_warning(message):
    print(f"  {paint(SYMBOLS['warning'], 'warning')} {paint(message, 'warning')}")


def print_info(message):
    print(f"  {paint(SYMBOLS['info'], 'primary')} {paint(message, 'muted')}")


def print_divider():
    print(paint("  " + "─" * 40, "muted"))


def print_step(message):
    """Announce a step that is about to run."""
    print(f"  {paint(SYMBOLS['arrow'], 'primary')} {message}")


class ProgressBar:
    """Single-line progress bar redrawn in place."""

    def __init__(self, stream=None, size=PROGRESS_BAR_SIZE):
        self.stream = stream or sys.stdout
        self.size = size
        self.total = 0
        self.value = 0

    def start(self, total, value=0, date=""):
        self.total = total
        self.update(value, date)

    def update(self, value, date=""):
        self.value = value
        self.stream.write("\r" + self.render(date))
        self.stream.flush()

    def render(self, date=""):
        ratio = self.value / self.total if self.total else 1.0
        filled = int(ratio * self.size)
        bar = "█" * filled + "░" * (self.size - filled)
        return (
            f"  {paint(bar, 'primary')} {paint(f'{int(ratio * 100)}%', 'muted')}"
            f" | {paint(f'{self.value}/{self.total}', 'highlight')} commits"
            f" | {paint(date, 'accent')}"
        )

    def stop(self):
        self.stream.write("\n")
        self.stream.flush()


def create_progress_bar():
    return ProgressBar()


def confirm_proceed(message, input_func=input):
    """Ask the operator to press Enter; Ctrl+C or end of input cancels."""
    prompt = (
        f"\n  {paint(SYMBOLS['warning'], 'warning')} {paint(message, 'warning')}"
        f" {paint('Press Enter to continue, Ctrl+C to cancel...', 'muted')}"
    )
    try:
        input_func(prompt)
    except (KeyboardInterrupt, EOFError):
        print()
        return False
    return True


def auto_confirm(message):
    """Confirmation used in unattended mode."""
    return True


def plan_to_json(plan):
    return json.dumps([asdict(entry) for entry in plan], indent=2)


def plan_to_csv(plan):
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["date", "needed", "existing", "to_create"])
    for entry in plan:
        writer.writerow([entry.date, entry.needed, entry.existing, entry.to_create])
    return buffer.getvalue()
