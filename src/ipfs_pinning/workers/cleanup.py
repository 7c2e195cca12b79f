"""Removal of a job's temporary files once the job reaches a terminal state."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ..jobs.jobs_models import JobType, QueuedJob

logger = logging.getLogger(__name__)


def collect_temp_paths(name: str, data: Mapping[str, Any]) -> list[str]:
    """Return every temp file path referenced by a raw job payload.

    Works on the raw payload so files are still collected for jobs whose
    payload failed validation.
    """
    paths: list[str] = []
    if name == JobType.PIN_RELEASE_FILES:
        main_file = data.get("mainFile")
        if isinstance(main_file, Mapping):
            _append_path(paths, main_file.get("tempFilePath"))
        for thumb in data.get("thumbnailFiles") or []:
            if isinstance(thumb, Mapping):
                _append_path(paths, thumb.get("tempFilePath"))
    elif name == JobType.PIN_ORGANIZATION_LOGO:
        _append_path(paths, data.get("tempFilePath"))
    return paths


def _append_path(paths: list[str], value: object) -> None:
    if isinstance(value, str) and value:
        paths.append(value)


def cleanup_job_files(job: QueuedJob, *, log: logging.Logger = logger) -> int:
    """Delete the job's temp files; failures are logged, never raised.

    Returns the number of files removed. Files that are already gone count as
    cleaned so repeated runs are harmless.
    """
    paths = collect_temp_paths(job.name, job.data)
    if not paths:
        return 0

    log.info("Cleaning up %s temporary file(s) for job %s.", len(paths), job.id)
    removed = 0
    for raw_path in paths:
        try:
            Path(raw_path).unlink(missing_ok=True)
        except OSError as exc:
            log.error("Failed to delete temporary file: %s (%s)", raw_path, exc)
            continue
        removed += 1
    return removed
