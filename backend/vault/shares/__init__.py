"""Share lifecycle and access control."""

from vault.shares.gate import check_gates, evaluate, precheck
from vault.shares.lifecycle import DownloadHandle, LifecycleCoordinator
from vault.shares.reaper import Reaper, SweepReport
from vault.shares.registry import ShareLimits, ShareRegistry
from vault.shares.types import (
    AccessReason,
    ConsumeResult,
    CreatedShare,
    DeleteResult,
    FileUpload,
    LoginRequiredError,
    PrecheckResult,
    RedeemResult,
    ShareOptions,
    ShareValidationError,
)

__all__ = [
    "AccessReason",
    "ConsumeResult",
    "CreatedShare",
    "DeleteResult",
    "DownloadHandle",
    "FileUpload",
    "LifecycleCoordinator",
    "LoginRequiredError",
    "PrecheckResult",
    "Reaper",
    "RedeemResult",
    "ShareLimits",
    "ShareOptions",
    "ShareRegistry",
    "ShareValidationError",
    "SweepReport",
    "check_gates",
    "evaluate",
    "precheck",
]
