"""Shared helpers for the result file formatters."""

from pathlib import Path


class ResultFileError(ValueError):
    """A result file could not be read as the expected format."""

    def __init__(self, result_fp: Path, reason: str) -> None:
        super().__init__(f"Cannot process result file {result_fp}: {reason}")
        self.result_fp = result_fp


def positive_or_none(value: int | None) -> int | None:
    """Drop line or column numbers GitHub would reject (missing, zero or negative)."""
    if value is None or value < 1:
        return None
    return value


def repo_relative_path(filepath: str | Path, local_repo_base: Path) -> str:
    """Make a path reported by a tool relative to the local repository copy.

    Paths outside the repository are returned unchanged, in posix form.
    """
    path = Path(filepath)
    if not path.is_absolute():
        return path.as_posix()
    try:
        return path.relative_to(local_repo_base).as_posix()
    except ValueError:
        return path.as_posix()
