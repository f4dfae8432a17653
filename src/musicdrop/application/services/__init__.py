"""Application services - acquisition pipeline, accounts and runtime settings."""

from musicdrop.application.services.acquisition_pipeline import (
    AcquisitionPipeline,
    AcquisitionResult,
)
from musicdrop.application.services.app_settings_service import (
    AppSettingsService,
    EffectiveSettings,
)
from musicdrop.application.services.auth_service import AuthService
from musicdrop.application.services.job_tracker import JobTracker
from musicdrop.application.services.progress_broadcaster import ProgressBroadcaster
from musicdrop.application.services.user_service import UserService

__all__ = [
    "AcquisitionPipeline",
    "AcquisitionResult",
    "AppSettingsService",
    "AuthService",
    "EffectiveSettings",
    "JobTracker",
    "ProgressBroadcaster",
    "UserService",
]
