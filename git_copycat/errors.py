"""Exceptions raised by git-copycat."""


class CopycatError(Exception):
    """Base class for errors that abort a sync run."""


class ConfigError(CopycatError):
    """Missing or conflicting configuration."""


class GitHubAPIError(CopycatError):
    """The contribution calendar could not be fetched."""


class GitCommandError(CopycatError):
    """A git subprocess exited with a non-zero status."""

    def __init__(self, cmd, returncode, stderr=""):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        message = f"git {' '.join(self.cmd[1:])} failed with exit code {returncode}"
        if self.stderr:
            message += f": {self.stderr}"
        super().__init__(message)
