"""Formatter to process Checkstyle XML output and yield GitHub annotations."""

import html
from collections.abc import Iterable
from pathlib import Path
from xml.etree.ElementTree import Element

from defusedxml.ElementTree import ParseError, parse

from checks_upload.formatters.utils import ResultFileError, repo_relative_path
from checks_upload.models import AnnotationLevel, CheckAnnotation

_SEVERITY_LEVELS: dict[str, AnnotationLevel] = {
    "error": AnnotationLevel.FAILURE,
    "warning": AnnotationLevel.WARNING,
}


def get_annotation_level(severity: str | None) -> AnnotationLevel:
    """Map a Checkstyle severity to an annotation level.

    Anything but error and warning (info, ignore, missing) is a notice.
    """
    return _SEVERITY_LEVELS.get((severity or "").lower(), AnnotationLevel.NOTICE)


def _positive_int(value: str | None) -> int | None:
    if value is None or not value.strip().isdigit():
        return None
    return int(value) or None


def _annotation_for_error(error: Element, path: str) -> CheckAnnotation:
    line = _positive_int(error.get("line")) or 1
    return CheckAnnotation(
        path=path,
        start_line=line,
        end_line=line,
        start_column=_positive_int(error.get("column")),
        annotation_level=get_annotation_level(error.get("severity")),
        title=error.get("source") or None,
        message=html.unescape(error.get("message") or "") or "No message provided.",
    )


def format_checkstyle_annotations(
    xml_output_fp: Path,
    local_repo_base: Path,
) -> Iterable[CheckAnnotation]:
    """Generate annotations for a Checkstyle XML report, in document order.

    :param xml_output_fp: filepath to the Checkstyle XML report
    :param local_repo_base: local repository base path, for deriving repo-relative paths
    :raises ResultFileError: if the report is not valid Checkstyle XML
    """
    try:
        root = parse(xml_output_fp).getroot()
    except ParseError as err:
        raise ResultFileError(xml_output_fp, str(err)) from err
    if root.tag != "checkstyle":
        raise ResultFileError(xml_output_fp, f"unexpected root element <{root.tag}>")

    for file_element in root.iter("file"):
        path = repo_relative_path(file_element.get("name", ""), local_repo_base)
        for error in file_element.iter("error"):
            yield _annotation_for_error(error, path)
