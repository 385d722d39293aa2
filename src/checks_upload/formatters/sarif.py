"""Formatter to process SARIF output and yield GitHub annotations."""

import json
from collections.abc import Iterable
from pathlib import Path
from urllib.parse import unquote, urlparse

from pysarif import ReportingDescriptor, Result, load_from_dict

from checks_upload.formatters.utils import (
    ResultFileError,
    positive_or_none,
    repo_relative_path,
)
from checks_upload.models import AnnotationLevel, CheckAnnotation

_SARIF_LEVELS: dict[str, AnnotationLevel] = {
    "error": AnnotationLevel.FAILURE,
    "warning": AnnotationLevel.WARNING,
    "note": AnnotationLevel.NOTICE,
    "none": AnnotationLevel.NOTICE,
}


def get_rule_name(full_rule: ReportingDescriptor) -> str:
    """Extract the rule name from a SARIF ReportingDescriptor.

    :param full_rule: SARIF ReportingDescriptor for the rule
    :return: rule name as a string
    """
    if full_rule.name:
        # name should be in full_rule.name, sadly pysarif often fails to parse it
        return str(full_rule.name)
    if full_rule.help_uri:
        # if we have a URI for the rule, the final part is usually the rule name
        return str(full_rule.help_uri.rstrip("/").split("/")[-1])
    return "Unknown Rule"


def get_annotation_level(
    result: Result,
    full_rule: ReportingDescriptor | None,
) -> AnnotationLevel:
    """Determine the annotation level of a result.

    Falls back to the rule's default configuration, then to SARIF's default "warning".
    """
    level = result.level
    if not level and full_rule and full_rule.default_configuration:
        level = full_rule.default_configuration.level
    return _SARIF_LEVELS.get(str(level or "warning").lower(), AnnotationLevel.WARNING)


def get_annotation_texts_from_sarif_result(
    result: Result,
    full_rule: ReportingDescriptor | None,
) -> tuple[str, str, str | None]:
    """Extract title, message, and raw_details for a SARIF result annotation.

    :param result: SARIF result object
    :param full_rule: SARIF ReportingDescriptor for the rule that triggered this result
    :return: tuple of (title, message, raw_details)
    """
    rule_name = get_rule_name(full_rule) if full_rule else "Unknown Rule"
    # Note: github annotations do not have markdown support, only check run summaries do
    title: str = f"[{result.rule_id}]: {rule_name}" if result.rule_id else rule_name

    raw_details: str | None = None
    if full_rule and full_rule.full_description and full_rule.full_description.text:
        raw_details = (
            "Background for this rule per tool's documentation:\n> "
            + "\n> ".join(full_rule.full_description.text.split("\n"))
        )

    message: str | None = None
    if result.message and result.message.text:
        message = result.message.text
    elif result.message and result.message.markdown:
        message = result.message.markdown
    if not message:
        message = "No additional information provided."

    return title, message, raw_details


def _artifact_path(uri: str) -> str:
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return unquote(parsed.path)
    return uri


def format_sarif_annotations(
    json_output_fp: Path,
    local_repo_base: Path,
) -> Iterable[CheckAnnotation]:
    """Generate annotations for any SARIF json output.

    Only the first run is processed. Results without a usable location are skipped,
    columns and end lines GitHub would reject are dropped.

    :param json_output_fp: filepath to the full SARIF json output
    :param local_repo_base: local repository base path, for deriving repo-relative paths
    :raises ResultFileError: if the file is not valid JSON
    """
    try:
        with json_output_fp.open("r", encoding="utf-8") as json_file:
            json_content = json.load(json_file)
    except json.JSONDecodeError as err:
        raise ResultFileError(json_output_fp, str(err)) from err

    # Implicitly validates the JSON content against SARIF schema
    sarif_output = load_from_dict(json_content)
    if not sarif_output.runs:
        return

    # We only support processing one run in the SARIF output for now
    run = sarif_output.runs[0]
    tool_rules: list[ReportingDescriptor] = run.tool.driver.rules or []

    for result in run.results or []:
        full_rule = next(
            (rule for rule in tool_rules if rule.id == result.rule_id),
            None,
        )
        title, message, raw_details = get_annotation_texts_from_sarif_result(
            result,
            full_rule,
        )
        annotation_level = get_annotation_level(result, full_rule)

        for location in result.locations or []:
            try:
                uri = location.physical_location.artifact_location.uri  # pyright: ignore[reportOptionalMemberAccess]
                region = location.physical_location.region  # pyright: ignore[reportOptionalMemberAccess]
            except AttributeError:
                # error without any sensible location, skip it
                continue
            start_line = positive_or_none(region.start_line) if region else None
            if not (uri and region and start_line):
                continue
            end_line = max(positive_or_none(region.end_line) or start_line, start_line)
            err_is_on_one_line: bool = start_line == end_line

            yield CheckAnnotation(
                annotation_level=annotation_level,
                start_line=start_line,
                start_column=(
                    positive_or_none(region.start_column) if err_is_on_one_line else None
                ),
                end_line=end_line,
                end_column=(
                    positive_or_none(region.end_column) if err_is_on_one_line else None
                ),
                path=repo_relative_path(_artifact_path(uri), local_repo_base),
                message=message,
                raw_details=raw_details,
                title=title,
            )
