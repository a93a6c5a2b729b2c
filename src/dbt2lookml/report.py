"""YAML run report."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from dbt2lookml.exceptions import OutputDirectoryError
from dbt2lookml.generators.lookml import GenerationResult


class RunReport:
    """Collects timing and outcome of one ``generate`` run.

    Create it when the run starts, call ``finish`` with the driver result,
    then ``write`` it.
    """

    def __init__(self, started_at: datetime | None = None) -> None:
        self.started_at = started_at or datetime.now(timezone.utc)
        self.finished_at: datetime | None = None
        self.status = "running"
        self.result: GenerationResult | None = None
        self.message: str | None = None

    def finish(
        self,
        result: GenerationResult | None,
        status: str = "success",
        message: str | None = None,
        finished_at: datetime | None = None,
    ) -> None:
        """Record the end of the run.

        Args:
            result: Driver result, possibly partial; ``None`` if the driver
                never ran.
            status: ``success``, ``failed`` or ``cancelled``.
            message: Top-level error message, if any.
            finished_at: End time; now when omitted.
        """
        self.result = result
        self.status = status
        self.message = message
        self.finished_at = finished_at or datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        finished_at = self.finished_at or datetime.now(timezone.utc)
        result = self.result or GenerationResult()
        report: dict[str, Any] = {
            "status": self.status,
            "started_at": self.started_at.isoformat(),
            "finished_at": finished_at.isoformat(),
            "duration_seconds": round((finished_at - self.started_at).total_seconds(), 3),
            "models_processed": result.models_processed,
            "files_generated": result.files_generated,
            "files": [str(path) for path in result.files],
            "model_timings": {
                name: round(seconds, 4) for name, seconds in result.timings.items()
            },
            "errors": [
                {"model": error.model, "error": str(error.error)}
                for error in result.errors
            ],
        }
        if self.message:
            report["message"] = self.message
        return report

    def write(self, path: Path) -> Path:
        """Write the report as YAML.

        Raises:
            OutputDirectoryError: If the file cannot be written.
        """
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                yaml.safe_dump(self.to_dict(), f, sort_keys=False)
        except OSError as e:
            raise OutputDirectoryError(f"cannot write report {path}: {e}") from e
        return path
