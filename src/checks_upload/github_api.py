"""Utility functions to help interface with the GitHub checks API."""

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import jwt
from requests import Response, get, patch, post

from checks_upload.models import (
    CheckAnnotation,
    CheckRunConclusion,
    CheckRunOutput,
    CheckRunRef,
    CheckRunStatus,
    ExecutionContext,
)

logger = logging.getLogger(__name__)

CHECK_RUNS_PER_PAGE = 100


def _get_jwt_headers(jwt_str: str, accept_type: str) -> dict[str, str]:
    return {
        "Accept": f"{accept_type}",
        "Authorization": f"Bearer {jwt_str}",
    }


def _gen_github_timestamp() -> str:
    """Generate a timestamp for the current moment in the GitHub-expected format."""
    return datetime.now().astimezone().replace(microsecond=0).isoformat()


@dataclass
class AppInstallation:
    """Installation of a GitHub app, identified by App ID and Installation ID."""

    app_id: str
    app_installation_id: str
    github_api_url: str

    def _generate_app_jwt_from_pem(
        self,
        pem_filepath: Path,
        ttl_seconds: int = 600,
    ) -> str:
        with pem_filepath.open("rb") as pem_file:
            priv_key = jwt.jwk_from_pem(pem_file.read())
        jwt_payload = {
            "iat": int(time.time()),
            "exp": int(time.time()) + ttl_seconds,
            "iss": self.app_id,
        }
        jwt_instance = jwt.JWT()
        return str(jwt_instance.encode(jwt_payload, priv_key, alg="RS256"))

    def authenticate(self, app_privkey_pem: Path, timeout: int = 10) -> str:
        """Authenticate this App installation with GitHub and get an access token.

        :param app_privkey_pem: private key for this app in PEM format
        :param timeout: request timeout in seconds, optional, defaults to 10
        :return: the GitHub App access token
        :raises HTTPError: in case GitHub refuses to issue a token
        """
        app_jwt: str = self._generate_app_jwt_from_pem(app_privkey_pem)
        url: str = (
            f"{self.github_api_url.rstrip('/')}/app/installations/"
            f"{self.app_installation_id}/access_tokens"
        )
        headers = _get_jwt_headers(app_jwt, "application/vnd.github+json")
        response: Response = post(url, headers=headers, timeout=timeout)
        response.raise_for_status()
        return str(response.json().get("token"))


@dataclass
class CheckRunsClient:
    """Thin client for the check runs endpoints of one repository."""

    repo_api_url: str
    access_token: str
    timeout: int = 10
    headers: dict[str, str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Initialize the headers for usage with the Checks API."""
        self.headers = _get_jwt_headers(
            self.access_token,
            "application/vnd.github+json",
        )

    def list_check_runs(self, ref: str) -> list[CheckRunRef]:
        """List the check runs present on a commit.

        :param ref: commit sha to list check runs for
        :raises HTTPError: in case the GitHub API could not list the check runs
        """
        response: Response = get(
            f"{self.repo_api_url}/commits/{ref}/check-runs",
            params={"per_page": CHECK_RUNS_PER_PAGE},
            headers=self.headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return [
            CheckRunRef.model_validate(check_run)
            for check_run in response.json().get("check_runs", [])
        ]

    def create_check_run(
        self,
        head_sha: str,
        name: str,
        conclusion: CheckRunConclusion,
        output: CheckRunOutput,
    ) -> int:
        """Create a completed check run.

        :return: the id of the new check run
        :raises HTTPError: in case the GitHub API could not create the check run
        """
        json_payload = {
            "name": name,
            "head_sha": head_sha,
            "status": CheckRunStatus.COMPLETED.value,
            "conclusion": conclusion.value,
            "completed_at": _gen_github_timestamp(),
            "output": output.to_payload(),
        }
        response: Response = post(
            f"{self.repo_api_url}/check-runs",
            json=json_payload,
            headers=self.headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return int(response.json()["id"])

    def update_check_run(
        self,
        check_run_id: int,
        conclusion: CheckRunConclusion,
        output: CheckRunOutput,
    ) -> None:
        """Overwrite conclusion and output of an existing check run.

        :raises HTTPError: in case the GitHub API could not update the check run
        """
        json_payload = {
            "status": CheckRunStatus.COMPLETED.value,
            "conclusion": conclusion.value,
            "completed_at": _gen_github_timestamp(),
            "output": output.to_payload(),
        }
        response: Response = patch(
            f"{self.repo_api_url}/check-runs/{check_run_id}",
            json=json_payload,
            headers=self.headers,
            timeout=self.timeout,
        )
        response.raise_for_status()


class CheckReporter:
    """Create or update a named check run on the current commit, once per batch."""

    def __init__(self, client: CheckRunsClient, context: ExecutionContext) -> None:
        self.client = client
        self.context = context

    def report(
        self,
        name: str,
        title: str,
        annotations: Sequence[CheckAnnotation],
        total_count: int,
        conclusion: CheckRunConclusion,
    ) -> None:
        """Upload one batch of annotations to the check run called ``name``.

        The check run is looked up again for every batch, so a later batch
        updates the run an earlier batch created. Each update replaces the
        annotations shown for the run.

        :param name: name of the check run, unique per commit
        :param title: title of the check run output
        :param annotations: the batch to upload
        :param total_count: number of annotations across all batches
        :param conclusion: conclusion computed over all batches
        """
        logger.info(
            "Uploading %d / %d annotations to GitHub as %s with conclusion %s",
            len(annotations),
            total_count,
            name,
            conclusion.value,
        )
        head_sha = self.context.head_sha
        output = CheckRunOutput(
            title=title,
            summary=f"{total_count} violation(s) found",
            annotations=list(annotations),
        )

        existing = next(
            (run for run in self.client.list_check_runs(head_sha) if run.name == name),
            None,
        )
        if existing is None:
            self.client.create_check_run(head_sha, name, conclusion, output)
        else:
            self.client.update_check_run(existing.id, conclusion, output)
