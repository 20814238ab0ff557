"""
Batch Result Data Models.

Outcome of one batch run: how many records were indexed, skipped or
failed, and which ones failed.

Exports:
    IndexFailure: One failed source file
    BatchResult: Aggregated outcome of a batch run
"""

from typing import List
from pydantic import BaseModel, Field

from exceptions import BatchIndexError


class IndexFailure(BaseModel):
    """One source file that could not be indexed."""

    path: str = Field(..., description="Source file path")
    error_type: str = Field(..., description="Exception class name")
    error_message: str = Field(..., description="Exception message")


class BatchResult(BaseModel):
    """
    Aggregated outcome of a batch run.

    Built by the batch drivers after every dispatched task has finished.
    """

    total: int = Field(default=0, ge=0, description="Source files dispatched")
    indexed: int = Field(default=0, ge=0, description="Rows upserted (or built, in dry run)")
    skipped: int = Field(default=0, ge=0, description="Root sentinel records skipped")
    failures: List[IndexFailure] = Field(default_factory=list, description="Failed source files")

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures

    def merge(self, other: "BatchResult") -> "BatchResult":
        """Combined outcome of two runs (e.g. several manifests on one command line)."""
        return BatchResult(
            total=self.total + other.total,
            indexed=self.indexed + other.indexed,
            skipped=self.skipped + other.skipped,
            failures=self.failures + other.failures,
        )

    def error_summary(self, limit: int = 10) -> List[str]:
        """First `limit` failures as 'path: ErrorType: message' lines."""
        return [
            f"{f.path}: {f.error_type}: {f.error_message}"
            for f in self.failures[:limit]
        ]

    def raise_for_failures(self) -> None:
        """
        Raise BatchIndexError if any record failed.

        Raises:
            BatchIndexError: carries this result as .result
        """
        if self.ok:
            return
        raise BatchIndexError(
            f"{self.failed} of {self.total} records failed to index",
            result=self,
        )
