# type: ignore  # noqa: PGH003
# ruff: noqa: S101, D103, D100, INP001

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from checks_upload.models import (
    AnnotationLevel,
    CheckAnnotation,
    CheckRunOutput,
    ExecutionContext,
)


def test_annotation_end_line_defaults_to_start_line() -> None:
    annotation = CheckAnnotation(
        path="a.java",
        start_line=10,
        annotation_level=AnnotationLevel.FAILURE,
        message="unused import",
    )
    assert annotation.end_line == 10


def test_annotation_is_immutable() -> None:
    annotation = CheckAnnotation(
        path="a.java",
        start_line=10,
        annotation_level=AnnotationLevel.FAILURE,
        message="unused import",
    )
    with pytest.raises(ValidationError):
        annotation.message = "changed"


@pytest.mark.parametrize(
    "fields",
    [
        {"start_line": 5, "end_line": 4},
        {"start_line": 0},
        {"start_line": 1, "start_column": 0},
        {"start_line": 1, "message": ""},
    ],
)
def test_annotation_rejects_invalid_values(fields) -> None:
    data = {
        "path": "a.java",
        "annotation_level": AnnotationLevel.WARNING,
        "message": "magic number",
        **fields,
    }
    with pytest.raises(ValidationError):
        CheckAnnotation(**data)


def test_annotation_payload_keeps_columns_on_single_line() -> None:
    annotation = CheckAnnotation(
        path="a.java",
        start_line=3,
        end_line=3,
        start_column=5,
        end_column=9,
        annotation_level=AnnotationLevel.WARNING,
        message="magic number",
    )
    assert annotation.to_payload() == {
        "path": "a.java",
        "start_line": 3,
        "end_line": 3,
        "start_column": 5,
        "end_column": 9,
        "annotation_level": "warning",
        "message": "magic number",
    }


def test_annotation_payload_drops_columns_on_multiple_lines() -> None:
    annotation = CheckAnnotation(
        path="a.java",
        start_line=3,
        end_line=6,
        start_column=5,
        end_column=9,
        annotation_level=AnnotationLevel.NOTICE,
        message="long method",
        title="MethodLength",
    )
    payload = annotation.to_payload()
    assert "start_column" not in payload
    assert "end_column" not in payload
    assert payload["title"] == "MethodLength"


def test_check_run_output_payload() -> None:
    output = CheckRunOutput(title="Lint", summary="0 violation(s) found")
    assert output.to_payload() == {
        "title": "Lint",
        "summary": "0 violation(s) found",
        "annotations": [],
    }


def test_execution_context_from_push_environment() -> None:
    context = ExecutionContext.from_environment(
        {"GITHUB_SHA": "abc123", "GITHUB_REPOSITORY": "jdoe/project"},
    )
    assert context.head_sha == "abc123"
    assert context.repo_api_url == "https://api.github.com/repos/jdoe/project"


def test_execution_context_uses_pull_request_head(tmp_path: Path) -> None:
    event_fp = tmp_path / "event.json"
    event_fp.write_text(
        json.dumps({"pull_request": {"head": {"sha": "def456"}}}),
        encoding="utf-8",
    )
    context = ExecutionContext.from_environment(
        {
            "GITHUB_SHA": "merge789",
            "GITHUB_REPOSITORY": "jdoe/project",
            "GITHUB_API_URL": "https://ghe.example.com/api/v3/",
            "GITHUB_EVENT_PATH": str(event_fp),
        },
    )
    assert context.sha == "merge789"
    assert context.head_sha == "def456"
    assert context.repo_api_url == "https://ghe.example.com/api/v3/repos/jdoe/project"


def test_execution_context_requires_sha_and_repository() -> None:
    with pytest.raises(ValueError, match="GITHUB_SHA"):
        ExecutionContext.from_environment({"GITHUB_REPOSITORY": "jdoe/project"})
