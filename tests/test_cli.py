# type: ignore  # noqa: PGH003
# ruff: noqa: S101, D103, D100, INP001, ANN001
import logging
from pathlib import Path
from unittest.mock import patch

import pytest
from requests import HTTPError

from checks_upload.cli import main, resolve_access_token
from checks_upload.github_api import CheckReporter
from checks_upload.models import InlineMode, SeparateMode

ENV_VARS = (
    "INPUT_PATH",
    "INPUT_MODE",
    "INPUT_NAME",
    "INPUT_TITLE",
    "INPUT_TOKEN",
    "INPUT_FORMAT",
    "GITHUB_WORKSPACE",
    "GITHUB_EVENT_PATH",
    "GITHUB_SHA",
    "GITHUB_REPOSITORY",
    "GITHUB_API_URL",
    "GH_APP_ID",
    "GH_APP_INSTALL_ID",
    "GH_PRIVATE_KEY_PEM",
    "RUNNER_DEBUG",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch) -> None:
    for env_var in ENV_VARS:
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def actions_environment(monkeypatch) -> None:
    monkeypatch.setenv("GITHUB_SHA", "abc123")
    monkeypatch.setenv("GITHUB_REPOSITORY", "jdoe/project")


def test_invalid_mode_is_logged_but_does_not_fail(caplog) -> None:
    with patch("checks_upload.cli.pipeline.run") as mock_run:
        exit_code = main(["--path", "**/*.xml", "--mode", "bogus"])

    assert exit_code == 0
    mock_run.assert_not_called()
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert "bogus" in errors[0].getMessage()


def test_inline_mode_needs_no_credentials() -> None:
    with patch("checks_upload.cli.pipeline.run") as mock_run:
        exit_code = main(["--path", "**/*.xml", "--mode", "inline"])

    assert exit_code == 0
    path, mode, _ = mock_run.call_args.args
    assert path == "**/*.xml"
    assert mode == InlineMode()
    assert mock_run.call_args.kwargs["reporter"] is None
    assert mock_run.call_args.kwargs["emitter"].label == "Checkstyle"


def test_separate_mode_from_action_inputs(monkeypatch, actions_environment) -> None:
    monkeypatch.setenv("INPUT_PATH", "**/checkstyle-result.xml")
    monkeypatch.setenv("INPUT_MODE", "separate")
    monkeypatch.setenv("INPUT_NAME", "Lint")
    monkeypatch.setenv("INPUT_TITLE", "Lint report")
    monkeypatch.setenv("INPUT_TOKEN", "ghs_secret")

    with patch("checks_upload.cli.pipeline.run") as mock_run:
        exit_code = main([])

    assert exit_code == 0
    path, mode, _ = mock_run.call_args.args
    assert path == "**/checkstyle-result.xml"
    assert mode == SeparateMode(name="Lint", title="Lint report")
    reporter = mock_run.call_args.kwargs["reporter"]
    assert isinstance(reporter, CheckReporter)
    assert reporter.context.head_sha == "abc123"
    assert reporter.client.access_token == "ghs_secret"
    assert reporter.client.repo_api_url == "https://api.github.com/repos/jdoe/project"
    assert mock_run.call_args.kwargs["max_annotations_per_request"] == 50


def test_separate_mode_without_credentials_fails(actions_environment, capsys) -> None:
    with patch("checks_upload.cli.pipeline.run") as mock_run:
        exit_code = main(["--path", "**/*.xml"])

    assert exit_code == 1
    mock_run.assert_not_called()
    assert capsys.readouterr().out.startswith("::error::Separate mode needs")


def test_pipeline_errors_fail_the_run(actions_environment, capsys) -> None:
    with patch(
        "checks_upload.cli.pipeline.run",
        side_effect=HTTPError("403 Client Error: Forbidden"),
    ):
        exit_code = main(["--path", "**/*.xml", "--token", "ghs_secret"])

    assert exit_code == 1
    assert capsys.readouterr().out == "::error::403 Client Error: Forbidden\n"


def test_inline_mode_end_to_end(tmp_path: Path, monkeypatch, capsys) -> None:
    report_fp = tmp_path / "target" / "checkstyle-result.xml"
    report_fp.parent.mkdir()
    report_fp.write_text(
        f"""<checkstyle version="10.12.4">
  <file name="{tmp_path}/src/App.java">
    <error line="10" column="8" severity="error" message="Unused import."/>
    <error line="4" severity="warning" message="Magic number."/>
  </file>
</checkstyle>""",
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)

    exit_code = main(
        [
            "--path",
            "**/checkstyle-result.xml",
            "--mode",
            "inline",
            "--local-repo-path",
            str(tmp_path),
        ],
    )

    assert exit_code == 0
    assert capsys.readouterr().out == (
        "::error file=src/App.java,line=10,col=8::Unused import.\n"
    )


def test_resolve_access_token_via_github_app(tmp_path: Path) -> None:
    args = type(
        "Args",
        (),
        {
            "token": None,
            "app_id": "1234",
            "app_install_id": "5678",
            "pem_path": tmp_path / "app.pem",
        },
    )()
    with patch(
        "checks_upload.cli.AppInstallation.authenticate",
        return_value="ghs_installation",
    ) as mock_authenticate:
        token = resolve_access_token(args, "https://api.github.com")

    assert token == "ghs_installation"
    mock_authenticate.assert_called_once_with(tmp_path / "app.pem")


def test_inline_mode_labels_logs_with_result_format() -> None:
    with patch("checks_upload.cli.pipeline.run") as mock_run:
        exit_code = main(
            ["--path", "ruff.sarif", "--mode", "inline", "--format", "sarif"],
        )

    assert exit_code == 0
    assert mock_run.call_args.kwargs["emitter"].label == "SARIF"
