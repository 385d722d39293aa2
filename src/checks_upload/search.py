"""Locate result files on disk for a (multi-line) search path."""

import logging
import os
from pathlib import Path

from pathspec import GitIgnoreSpec

from checks_upload.models import SearchResult

logger = logging.getLogger(__name__)


def _split_patterns(search_path: str) -> list[str]:
    return [line.strip() for line in search_path.splitlines() if line.strip()]


def _match_path(file_path: Path, base_dir: Path) -> str:
    try:
        return file_path.relative_to(base_dir).as_posix()
    except ValueError:
        return file_path.as_posix().lstrip("/")


def find_results(search_path: str, base_dir: Path | None = None) -> SearchResult:
    """Find the result files matching the given search path.

    Every line of ``search_path`` is a gitignore-style pattern relative to
    ``base_dir``, lines starting with ``!`` exclude matches. A line naming an
    existing file is taken as is, which also allows absolute paths.

    :param search_path: newline separated patterns or file paths
    :param base_dir: directory the patterns are relative to, defaults to the cwd
    :return: the matching files, de-duplicated and sorted, and their common root
    """
    base_dir = (base_dir or Path.cwd()).resolve()
    patterns = _split_patterns(search_path)

    found: set[Path] = set()
    for index, pattern in enumerate(patterns):
        if pattern.startswith("!") or not (literal := base_dir / pattern).is_file():
            continue
        # only exclusions listed after the file apply to it, as in a gitignore
        exclusions = GitIgnoreSpec.from_lines(
            line[1:] for line in patterns[index + 1 :] if line.startswith("!")
        )
        if not exclusions.match_file(_match_path(literal.resolve(), base_dir)):
            found.add(literal.resolve())

    matcher = GitIgnoreSpec.from_lines(patterns)
    for relative_path in matcher.match_tree_files(base_dir):
        found.add((base_dir / relative_path).resolve())

    files_to_upload = sorted(found)
    if not files_to_upload:
        return SearchResult(files_to_upload=[], root_directory=base_dir)

    root_directory = Path(
        os.path.commonpath([str(result.parent) for result in files_to_upload]),
    )
    logger.debug(
        "Found %d result file(s) under %s",
        len(files_to_upload),
        root_directory,
    )
    return SearchResult(files_to_upload=files_to_upload, root_directory=root_directory)
