"""
Result and progress models produced by the migration pipeline.
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from .record import Record


class CleaningResult(BaseModel):
    """Outcome of cleaning a whole collection."""

    original_count: int = 0
    cleaned_count: int = 0
    fixed_issues: List[str] = Field(default_factory=list)
    unfixable_issues: List[str] = Field(default_factory=list)
    cleaned_records: List[Record] = Field(default_factory=list)


class MigrationStage(str, Enum):
    """
    Pipeline stages.

    preparing -> backing-up (optional) -> migrating -> validating -> completed,
    with error reachable from any stage. completed and error are terminal.
    """

    PREPARING = "preparing"
    BACKING_UP = "backing-up"
    MIGRATING = "migrating"
    VALIDATING = "validating"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (MigrationStage.COMPLETED, MigrationStage.ERROR)


class MigrationProgress(BaseModel):
    """A progress report emitted at each pipeline step."""

    stage: MigrationStage
    processed: int = 0
    total: int = 0
    current_item: Optional[str] = None
    error: Optional[str] = None


class MigrationOptions(BaseModel):
    """Options for a full migration run."""

    include_trash: bool = True
    create_backup: bool = True
    overwrite_existing: bool = False
    target_root: Any = Field(
        default=None,
        description="Root directory handle; the storage backend selects one when omitted"
    )


class FileValidationResult(BaseModel):
    """Validation outcome for a single migrated document."""

    file_name: str
    is_valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    corrupted: bool = Field(
        default=False,
        description="The file could not be read or parsed at all"
    )
    original: Optional[Record] = None
    migrated: Optional[Record] = None

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)


class ValidationStatistics(BaseModel):
    """Aggregate counters for a validation run."""

    total_records_original: int = 0
    total_records_migrated: int = 0
    total_trash_original: int = 0
    total_trash_migrated: int = 0
    valid_files: int = 0
    invalid_files: int = 0
    corrupted_files: int = 0
    count_mismatches: int = 0

    @property
    def total_files(self) -> int:
        return self.valid_files + self.invalid_files + self.corrupted_files

    @property
    def error_rate(self) -> float:
        if self.total_files == 0:
            return 0.0
        return (self.invalid_files + self.corrupted_files) / self.total_files


class ValidationResult(BaseModel):
    """Aggregated validation outcome for a migration run."""

    is_valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    statistics: ValidationStatistics = Field(default_factory=ValidationStatistics)
    files: List[FileValidationResult] = Field(default_factory=list)


class MigrationResult(BaseModel):
    """Final result of a migration run."""

    success: bool = False
    migrated_records: int = 0
    migrated_trash: int = 0
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    backup_path: Optional[str] = None
    validation: Optional[ValidationResult] = None
    stage: MigrationStage = MigrationStage.PREPARING


class DurationEstimate(BaseModel):
    """Linear estimate of how long a migration will take."""

    total_seconds: int
    minutes: int
    seconds: int


class MigrationSummary(BaseModel):
    """What the source store holds before a migration."""

    has_data: bool
    active: int
    trash: int
