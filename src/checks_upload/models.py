"""Model representation of GitHub checks specific dictionary/json structures."""

import json
import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, model_validator

DEFAULT_GITHUB_API_URL = "https://api.github.com"


class CheckRunConclusion(Enum):
    """The conclusion states this tool reports for a check run."""

    SUCCESS = "success"
    FAILURE = "failure"
    NEUTRAL = "neutral"


class CheckRunStatus(Enum):
    """Status of a check run. Runs reported by this tool are always completed."""

    COMPLETED = "completed"


class AnnotationLevel(Enum):
    """The severity levels permitted by GitHub checks for each individual annotation."""

    NOTICE = "notice"
    WARNING = "warning"
    FAILURE = "failure"


class CheckAnnotation(BaseModel):
    """Models the json expected by GitHub checks for each individual annotation."""

    model_config = ConfigDict(frozen=True)

    path: str
    start_line: PositiveInt
    end_line: PositiveInt
    start_column: PositiveInt | None = None
    end_column: PositiveInt | None = None
    annotation_level: AnnotationLevel
    message: str = Field(min_length=1)
    title: str | None = None
    raw_details: str | None = None

    @model_validator(mode="before")
    @classmethod
    def default_end_line(cls, data: Any) -> Any:  # noqa: ANN401
        if isinstance(data, dict) and data.get("end_line") is None:
            return {**data, "end_line": data.get("start_line")}
        return data

    @model_validator(mode="after")
    def check_line_range(self) -> "CheckAnnotation":
        if self.start_line > self.end_line:
            msg = f"start_line {self.start_line} is after end_line {self.end_line}"
            raise ValueError(msg)
        return self

    def to_payload(self) -> dict[str, Any]:
        """Serialize for the checks API, dropping unset fields.

        GitHub only accepts columns on annotations spanning a single line.
        """
        exclude = set()
        if self.start_line != self.end_line:
            exclude = {"start_column", "end_column"}
        return self.model_dump(mode="json", exclude_none=True, exclude=exclude)


class CheckRunOutput(BaseModel):
    """The json format expected for the output of a Checks run."""

    title: str
    summary: str
    annotations: list[CheckAnnotation] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        """Serialize for the checks API."""
        return {
            "title": self.title,
            "summary": self.summary,
            "annotations": [annotation.to_payload() for annotation in self.annotations],
        }


class CheckRunRef(BaseModel):
    """Identity of a check run already present on a commit."""

    id: int
    name: str


class SearchResult(BaseModel):
    """Result files found for a search path, in discovery order."""

    files_to_upload: list[Path]
    root_directory: Path


class ExecutionContext(BaseModel):
    """The commit and repository a run reports against."""

    model_config = ConfigDict(frozen=True)

    sha: str
    repository: str
    api_url: str = DEFAULT_GITHUB_API_URL
    pull_request_head_sha: str | None = None

    @property
    def head_sha(self) -> str:
        """Commit to report on: the PR head when triggered by a pull request."""
        return self.pull_request_head_sha or self.sha

    @property
    def repo_api_url(self) -> str:
        """REST base URL of the repository."""
        return f"{self.api_url.rstrip('/')}/repos/{self.repository}"

    @classmethod
    def from_environment(
        cls,
        env: Mapping[str, str] | None = None,
    ) -> "ExecutionContext":
        """Build the context from the variables set by a GitHub Actions runner.

        :param env: environment mapping, defaults to ``os.environ``
        :raises ValueError: if GITHUB_SHA or GITHUB_REPOSITORY is not set
        """
        env = os.environ if env is None else env
        missing = [var for var in ("GITHUB_SHA", "GITHUB_REPOSITORY") if not env.get(var)]
        if missing:
            msg = f"Missing environment variable(s): {', '.join(missing)}"
            raise ValueError(msg)
        pull_request_head_sha: str | None = None
        if event_path := env.get("GITHUB_EVENT_PATH"):
            event_fp = Path(event_path)
            if event_fp.exists():
                with event_fp.open("r", encoding="utf-8") as event_file:
                    payload = json.load(event_file)
                pull_request = payload.get("pull_request") or {}
                pull_request_head_sha = pull_request.get("head", {}).get("sha")
        return cls(
            sha=env["GITHUB_SHA"],
            repository=env["GITHUB_REPOSITORY"],
            api_url=env.get("GITHUB_API_URL") or DEFAULT_GITHUB_API_URL,
            pull_request_head_sha=pull_request_head_sha,
        )


class SeparateMode(BaseModel):
    """Report annotations as a named check run on the commit."""

    model_config = ConfigDict(frozen=True)

    name: str
    title: str


class InlineMode(BaseModel):
    """Report failures as inline workflow commands in the build log."""

    model_config = ConfigDict(frozen=True)


ReportMode = SeparateMode | InlineMode
