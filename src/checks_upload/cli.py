"""Provides an interface to run the upload directly, e.g. as a GitHub Actions step."""

import logging
import sys
from collections.abc import Callable, Iterable, Sequence
from functools import partial
from pathlib import Path

from configargparse import ArgumentParser, Namespace

from checks_upload import pipeline
from checks_upload.aggregation import MAX_ANNOTATIONS_PER_REQUEST
from checks_upload.formatters.checkstyle import format_checkstyle_annotations
from checks_upload.formatters.sarif import format_sarif_annotations
from checks_upload.github_api import AppInstallation, CheckReporter, CheckRunsClient
from checks_upload.inline import InlineEmitter, emit_workflow_command
from checks_upload.models import CheckAnnotation, ExecutionContext, SeparateMode

logger = logging.getLogger(__name__)

LOG_FORMAT = "[checks-upload] %(levelname)s: %(message)s"

log_to_annotation_formatters: dict[
    str,
    Callable[[Path, Path], Iterable[CheckAnnotation]],
] = {
    "checkstyle": format_checkstyle_annotations,
    "sarif": format_sarif_annotations,
}

log_labels: dict[str, str] = {
    "checkstyle": "Checkstyle",
    "sarif": "SARIF",
}


def build_argparser() -> ArgumentParser:
    """Create the parser for all options, each of which can be set via env var."""
    argparser = ArgumentParser(
        prog="checks-upload",
        description="Report lint results as GitHub check runs or inline annotations. "
        "Every option can also be passed as GitHub Actions input (INPUT_<NAME>).",
    )
    argparser.add_argument(
        "-c",
        "--config",
        is_config_file=True,
        help="Config file with any of the options below, as `key = value` lines.",
    )
    argparser.add_argument(
        "--path",
        type=str,
        env_var="INPUT_PATH",
        required=True,
        help="Result files to report. One gitignore-style pattern or file per line.",
    )
    argparser.add_argument(
        "--mode",
        type=str,
        env_var="INPUT_MODE",
        default="separate",
        help='Either "separate", to report a check run of its own, or "inline", to '
        "annotate the build log of the current job with the failures.",
    )
    argparser.add_argument(
        "--name",
        type=str,
        env_var="INPUT_NAME",
        default="Checkstyle",
        help="Name of the check run (separate mode). Reused if already on the commit.",
    )
    argparser.add_argument(
        "--title",
        type=str,
        env_var="INPUT_TITLE",
        default="Checkstyle Source Code Analyzer report",
        help="Title of the check run output (separate mode).",
    )
    argparser.add_argument(
        "--token",
        type=str,
        env_var="INPUT_TOKEN",
        help="GitHub token allowed to write check runs (separate mode).",
    )
    argparser.add_argument(
        "--format",
        dest="result_format",
        choices=log_to_annotation_formatters.keys(),
        env_var="INPUT_FORMAT",
        default="checkstyle",
        help="Format of the result files.",
    )
    argparser.add_argument(
        "--local-repo-path",
        type=Path,
        env_var="GITHUB_WORKSPACE",
        default=Path.cwd(),
        help="Path to the local copy of the repository, absolute paths in the result "
        "files are made relative to it. Defaults to the current working directory.",
    )
    argparser.add_argument(
        "--max-annotations-per-request",
        type=int,
        default=MAX_ANNOTATIONS_PER_REQUEST,
        help="Number of annotations uploaded per check run request.",
    )
    argparser.add_argument(
        "--app-id",
        type=str,
        env_var="GH_APP_ID",
        help="ID of a GitHub App authorized to write check runs, used without --token.",
    )
    argparser.add_argument(
        "--app-install-id",
        type=str,
        env_var="GH_APP_INSTALL_ID",
        help="ID of the repository's GitHub App installation.",
    )
    argparser.add_argument(
        "--pem-path",
        type=Path,
        env_var="GH_PRIVATE_KEY_PEM",
        help="Private key to authenticate as the GitHub App specified in --app-id.",
    )
    argparser.add_argument(
        "--debug",
        action="store_true",
        env_var="RUNNER_DEBUG",
        help="Enable debug logging.",
    )
    return argparser


def resolve_access_token(args: Namespace, github_api_url: str) -> str:
    """Get the token for the checks API, from --token or via the GitHub App.

    :raises ValueError: if neither a token nor complete App credentials are given
    """
    if args.token:
        return str(args.token)
    if args.app_id and args.app_install_id and args.pem_path:
        installation = AppInstallation(
            app_id=args.app_id,
            app_installation_id=args.app_install_id,
            github_api_url=github_api_url,
        )
        return installation.authenticate(args.pem_path)
    msg = (
        "Separate mode needs a GitHub token (--token) or GitHub App credentials "
        "(--app-id, --app-install-id, --pem-path)."
    )
    raise ValueError(msg)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the upload and return the process exit code."""
    args = build_argparser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format=LOG_FORMAT,
    )

    # an unknown mode is logged, but does not fail the build step
    mode = pipeline.parse_mode(args.mode, args.name, args.title)
    if mode is None:
        return 0

    try:
        reporter: CheckReporter | None = None
        if isinstance(mode, SeparateMode):
            context = ExecutionContext.from_environment()
            client = CheckRunsClient(
                repo_api_url=context.repo_api_url,
                access_token=resolve_access_token(args, context.api_url),
            )
            reporter = CheckReporter(client, context)

        formatter = log_to_annotation_formatters[args.result_format]
        pipeline.run(
            args.path,
            mode,
            partial(formatter, local_repo_base=args.local_repo_path.resolve()),
            reporter=reporter,
            emitter=InlineEmitter(label=log_labels[args.result_format]),
            max_annotations_per_request=args.max_annotations_per_request,
        )
    except Exception as err:  # noqa: BLE001
        logger.fatal("Reporting failed: %s", err)
        emit_workflow_command("error", {}, str(err))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
