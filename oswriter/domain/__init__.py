"""Domain models for bootable media creation."""

from __future__ import annotations

from .models import (
    Backend,
    BackendResult,
    BlockDevice,
    ExclusionReason,
    ImageSpec,
    ImageType,
    JobState,
    MediaType,
    SafetyVerdict,
    Verdict,
    WriteJob,
    collect_mountpoints,
)


__all__ = [
    "Backend",
    "BackendResult",
    "BlockDevice",
    "ExclusionReason",
    "ImageSpec",
    "ImageType",
    "JobState",
    "MediaType",
    "SafetyVerdict",
    "Verdict",
    "WriteJob",
    "collect_mountpoints",
]
