"""Helpers to aggregate annotations into request batches and an overall verdict."""

from collections.abc import Iterable, Sequence

from checks_upload.models import AnnotationLevel, CheckAnnotation, CheckRunConclusion

# GitHub accepts at most 50 annotations per check run create/update request
MAX_ANNOTATIONS_PER_REQUEST = 50


def batch_annotations(
    annotations: Sequence[CheckAnnotation],
    limit: int = MAX_ANNOTATIONS_PER_REQUEST,
) -> list[list[CheckAnnotation]]:
    """Split annotations into consecutive, order-preserving batches.

    An empty input still yields one (empty) batch, so a report is produced anyway.

    :param annotations: annotations in reporting order
    :param limit: maximum number of annotations per batch
    :return: the batches, each holding at most ``limit`` annotations
    :raises ValueError: if the limit is not positive
    """
    if limit <= 0:
        msg = f"Batch limit must be positive, got {limit}."
        raise ValueError(msg)
    if len(annotations) <= limit:
        return [list(annotations)]
    return [
        list(annotations[start : start + limit])
        for start in range(0, len(annotations), limit)
    ]


def get_conclusion(annotations: Iterable[CheckAnnotation]) -> CheckRunConclusion:
    """Reduce the annotation levels to a check run conclusion.

    Failures take precedence over warnings, notices never affect the outcome.
    """
    levels = {annotation.annotation_level for annotation in annotations}
    if AnnotationLevel.FAILURE in levels:
        return CheckRunConclusion.FAILURE
    if AnnotationLevel.WARNING in levels:
        return CheckRunConclusion.NEUTRAL
    return CheckRunConclusion.SUCCESS
