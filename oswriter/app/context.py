from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from oswriter.domain import BlockDevice, ImageSpec, JobState, MediaType, WriteJob

EXIT_OK = 0
EXIT_FAILURE = 1


@dataclass
class WorkflowContext:
    """State of one "create bootable media" run, handed from step to step."""

    device: Optional[BlockDevice] = None
    media_type: Optional[MediaType] = None
    image: Optional[ImageSpec] = None
    job: Optional[WriteJob] = None
    cancelled: bool = False
    failure: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.job is not None and self.job.state is JobState.SUCCESS

    @property
    def exit_code(self) -> int:
        if self.failure is not None:
            return EXIT_FAILURE
        if self.cancelled or self.succeeded:
            return EXIT_OK
        if self.job is not None and self.job.state is JobState.FAILURE:
            return EXIT_FAILURE
        return EXIT_OK
