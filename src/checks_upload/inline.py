"""Emit annotations as GitHub Actions workflow commands in the build log."""

import logging
import sys
from collections.abc import Callable, Iterable, Mapping
from typing import TextIO

from checks_upload.models import AnnotationLevel, CheckAnnotation

logger = logging.getLogger(__name__)


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace(":", "%3A").replace(",", "%2C")


def emit_workflow_command(
    kind: str,
    properties: Mapping[str, str | int | None],
    message: str,
    stream: TextIO | None = None,
) -> None:
    """Write a workflow command such as ``::error file=a.py,line=3::msg``.

    Properties without a value are left out.
    """
    props = ",".join(
        f"{key}={_escape_property(str(value))}"
        for key, value in properties.items()
        if value is not None
    )
    command = f"::{kind} {props}" if props else f"::{kind}"
    print(f"{command}::{_escape_data(message)}", file=stream or sys.stdout)


class InlineEmitter:
    """Log every annotation and surface failures as inline error commands.

    Log lines read ``[<label> <level>] <path>:<line> <message>``, the label names
    the tool that produced the results.
    """

    def __init__(
        self,
        emit: Callable[[str, Mapping[str, str | int | None], str], None] = (
            emit_workflow_command
        ),
        label: str = "Checkstyle",
    ) -> None:
        self.emit = emit
        self.label = label

    def report(self, annotations: Iterable[CheckAnnotation]) -> None:
        """Emit the annotations, in order.

        Only failures become inline diagnostics, lower levels are just logged.
        """
        for annotation in annotations:
            logger.info(
                "[%s %s] %s:%d %s",
                self.label,
                annotation.annotation_level.value,
                annotation.path,
                annotation.start_line,
                annotation.message,
            )
            if annotation.annotation_level != AnnotationLevel.FAILURE:
                continue
            self.emit(
                "error",
                {
                    "file": annotation.path,
                    "line": annotation.start_line,
                    "col": annotation.start_column,
                },
                annotation.message,
            )
