"""Error taxonomy shared by every gitbench package.

Callers catch the narrowest class they can act on:

  ParseError     malformed benchmark output or a corrupt history document
  NoResultsError benchmark output with nothing to record (a ParseError)
  NotFoundError  a missing suite or file where one was required
  VcsError       any failure reported by the version-control provider
  RemoteError    GitHub API failures (commit comments); logged, never fatal
  ConfigError    invalid thresholds, branch names or limits; fatal at startup
"""

from __future__ import annotations


class GitBenchError(Exception):
    """Base class for all gitbench errors."""


class ParseError(GitBenchError):
    pass


class NoResultsError(ParseError):
    """Benchmark output contained no recognisable results. The CLI treats this as a skip."""


class NotFoundError(GitBenchError):
    pass


class VcsError(GitBenchError):
    """A version-control operation failed.

    ``command`` and ``stderr`` are kept so the CLI can show the operator
    exactly which git invocation broke.
    """

    def __init__(self, message: str, command: list[str] | None = None, stderr: str = ""):
        super().__init__(message)
        self.command = command or []
        self.stderr = stderr


class RemoteError(GitBenchError):
    pass


class ConfigError(GitBenchError):
    pass
