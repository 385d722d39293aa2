"""Search result files, turn them into annotations and report them to GitHub."""

import logging
from collections.abc import Callable, Iterable
from itertools import chain
from pathlib import Path

from checks_upload.aggregation import (
    MAX_ANNOTATIONS_PER_REQUEST,
    batch_annotations,
    get_conclusion,
)
from checks_upload.github_api import CheckReporter
from checks_upload.inline import InlineEmitter
from checks_upload.models import (
    CheckAnnotation,
    InlineMode,
    ReportMode,
    SearchResult,
    SeparateMode,
)
from checks_upload.search import find_results

logger = logging.getLogger(__name__)

ResultParser = Callable[[Path], Iterable[CheckAnnotation]]


def parse_mode(mode: str, name: str, title: str) -> ReportMode | None:
    """Select the report mode, logging an error for unknown values.

    :return: the mode, or None if ``mode`` is neither "inline" nor "separate"
    """
    if mode == "separate":
        return SeparateMode(name=name, title=title)
    if mode == "inline":
        return InlineMode()
    logger.error('Invalid mode provided (%s). Use "inline" or "separate".', mode)
    return None


def collect_annotations(
    files: Iterable[Path],
    parse: ResultParser,
) -> list[CheckAnnotation]:
    """Parse every file and concatenate the annotations in file order."""
    return list(chain.from_iterable(parse(result_fp) for result_fp in files))


def run(  # noqa: PLR0913
    path: str,
    mode: ReportMode,
    parse: ResultParser,
    *,
    reporter: CheckReporter | None = None,
    emitter: InlineEmitter | None = None,
    search: Callable[[str], SearchResult] = find_results,
    max_annotations_per_request: int = MAX_ANNOTATIONS_PER_REQUEST,
) -> None:
    """Report the annotations of all result files found for ``path``.

    Errors of the search, the parser or the GitHub API are not handled here,
    any of them aborts the run.

    :param path: search path for the result files
    :param mode: where the annotations are reported to
    :param parse: turns one result file into annotations
    :param reporter: check run reporter, required for separate mode
    :param emitter: inline emitter, defaults to writing workflow commands to stdout
    :param search: locates the result files for ``path``
    :param max_annotations_per_request: batch size for check run uploads
    :raises ValueError: if separate mode is requested without a reporter
    """
    if isinstance(mode, SeparateMode) and reporter is None:
        msg = "Reporting to a separate check run requires a check reporter."
        raise ValueError(msg)

    search_result = search(path)
    if not search_result.files_to_upload:
        logger.warning(
            "No files were found for the provided path: %s. "
            "No results will be uploaded.",
            path,
        )
        return

    logger.info(
        "With the provided path, there will be %d results uploaded",
        len(search_result.files_to_upload),
    )
    logger.debug("Root artifact directory is %s", search_result.root_directory)

    annotations = collect_annotations(search_result.files_to_upload, parse)
    logger.debug(
        "Grouping %d annotations into chunks of %d",
        len(annotations),
        max_annotations_per_request,
    )
    batches = batch_annotations(annotations, max_annotations_per_request)
    logger.debug("Created %d buckets", len(batches))

    if isinstance(mode, SeparateMode):
        conclusion = get_conclusion(annotations)
        for batch in batches:
            reporter.report(  # pyright: ignore[reportOptionalMemberAccess]
                mode.name,
                mode.title,
                batch,
                len(annotations),
                conclusion,
            )
    elif isinstance(mode, InlineMode):
        (emitter or InlineEmitter()).report(annotations)
