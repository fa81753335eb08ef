# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the Report Abandono platform.
"""

# Base models
from .base import BaseEntity, utc_now

# Enumerations
from .enums import (
    ActorRole,
    AccountStatus,
    ReportStatus,
    ReportAction,
    MediaKind,
    ROLE_STATUSES
)

# Core entities
from .entities import (
    Actor,
    Media,
    HistoryEntry,
    Report,
    UserContext,
    format_display_code
)

# Request models
from .requests import (
    RegisterRequest,
    LoginRequest,
    UpdateProfileRequest,
    SubmitReportRequest,
    MediaUpload,
    ReportPath,
    ActorPath,
    ALLOWED_IMAGE_TYPES,
    ALLOWED_VIDEO_TYPES
)

__all__ = [
    # Base models
    "BaseEntity",
    "utc_now",

    # Enumerations
    "ActorRole",
    "AccountStatus",
    "ReportStatus",
    "ReportAction",
    "MediaKind",
    "ROLE_STATUSES",

    # Core entities
    "Actor",
    "Media",
    "HistoryEntry",
    "Report",
    "UserContext",
    "format_display_code",

    # Request models
    "RegisterRequest",
    "LoginRequest",
    "UpdateProfileRequest",
    "SubmitReportRequest",
    "MediaUpload",
    "ReportPath",
    "ActorPath",
    "ALLOWED_IMAGE_TYPES",
    "ALLOWED_VIDEO_TYPES"
]
