"""Job models for the OctoPrint bridge."""

import typing

import pydantic
import structlog

from .common import ApiModel, as_number

logger = structlog.get_logger(__name__)


class JobFile(ApiModel):
    """File currently selected for printing."""

    name: str | None = None
    display: str | None = None
    origin: str | None = None
    path: str | None = None
    size: int | None = None
    date: int | None = None

    @property
    def full_path(self) -> str:
        """Path in ``origin/path`` form, the same key file nodes store."""
        return f"{self.origin}/{self.path}"


class JobDetails(ApiModel):
    """The ``job`` block of ``GET /api/job``."""

    file: JobFile = pydantic.Field(default_factory=JobFile)
    filament: dict[str, typing.Any] | None = None
    estimated_print_time: float | None = pydantic.Field(default=None, alias="estimatedPrintTime")


class JobProgress(ApiModel):
    """The ``progress`` block of ``GET /api/job``."""

    completion: float | None = None
    filepos: int | None = None
    print_time: float | None = pydantic.Field(default=None, alias="printTime")
    print_time_left: float | None = pydantic.Field(default=None, alias="printTimeLeft")


class JobResponse(ApiModel):
    """Response of ``GET /api/job``."""

    job: JobDetails | None = None
    progress: JobProgress | None = None
    state: str | None = None
    error: str | None = None


class PrintJob(pydantic.BaseModel):
    """Flattened view of the running job, as mirrored into ``printjob.*``.

    The defaults are the values written while nothing is printing.
    """

    file_name: str = ""
    origin: str = ""
    size_kib: float = 0
    date: int = 0
    filament_length_m: float = 0
    filament_volume_cm3: float = 0
    completion: int = 0
    filepos_kib: float = 0
    print_time: int = 0
    print_time_left: int = 0
    finished_at: int = 0

    @classmethod
    def from_response(cls, response: JobResponse, now: float) -> "PrintJob":
        """Derive job values from a ``GET /api/job`` response.

        Args:
            response: The parsed job response.
            now: Current epoch time in seconds, used for the estimated finish time.
        """
        values: dict[str, typing.Any] = {}
        job_file = response.job.file if response.job else None

        if job_file is not None and job_file.name is not None:
            values["file_name"] = job_file.name
            values["origin"] = job_file.origin or ""
            values["size_kib"] = round((job_file.size or 0) / 1024, 2)
            values["date"] = (job_file.date or 0) * 1000
            values["filament_length_m"], values["filament_volume_cm3"] = _filament_usage(response.job.filament)

        progress = response.progress
        if progress is not None:
            values["completion"] = round(progress.completion or 0)
            values["filepos_kib"] = round((progress.filepos or 0) / 1024, 2)
            values["print_time"] = int(progress.print_time or 0)
            values["print_time_left"] = int(progress.print_time_left or 0)
            if progress.print_time_left is not None:
                values["finished_at"] = int((now + progress.print_time_left) * 1000)

        return cls(**values)


def _filament_usage(filament: dict[str, typing.Any] | None) -> tuple[float, float]:
    """Return filament (length in m, volume in cm³) for the first tool."""
    if not filament:
        return 0, 0

    usage = filament.get("tool0") if isinstance(filament.get("tool0"), dict) else filament
    raw_length, raw_volume = usage.get("length"), usage.get("volume")
    length = 0 if raw_length is None else as_number(raw_length)
    volume = 0 if raw_volume is None else as_number(raw_volume)

    if length is None or volume is None:
        logger.debug("Filament length and/or volume contains no valid number", filament=filament)
        return 0, 0

    return round(length / 1000, 2), round(volume, 2)
