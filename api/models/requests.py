# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints and service inputs.
"""

import math
import re
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from .entities import EMAIL_PATTERN

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
ALLOWED_VIDEO_TYPES = ("video/mp4", "video/webm", "video/quicktime")


def _required_text(value, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValueError(f'{field_name} is required')
    return str(value).strip()


class RequestModel(BaseModel):
    """Base for inbound payloads: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class RegisterRequest(RequestModel):
    """Registration payload for individuals and organizations."""

    account_type: str = Field(..., alias="accountType", description="individual or organization")
    email: str = Field(..., description="Login e-mail")
    password: str = Field(..., min_length=6, max_length=72, description="Plain password, hashed before storage")
    full_name: Optional[str] = Field(None, alias="fullName", max_length=200)
    organization_name: Optional[str] = Field(None, alias="organizationName", max_length=200)
    cpf: Optional[str] = Field(None, max_length=20)
    cnpj: Optional[str] = Field(None, max_length=20)
    phone: Optional[str] = Field(None, max_length=40)
    address: Optional[str] = Field(None, max_length=500)

    @field_validator('account_type')
    @classmethod
    def validate_account_type(cls, v):
        """Only individuals and organizations can self-register."""
        if v not in ("individual", "organization"):
            raise ValueError('accountType must be "individual" or "organization"')
        return v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        if not re.match(EMAIL_PATTERN, v.lower()):
            raise ValueError('Invalid email format')
        return v.lower()

    @model_validator(mode='after')
    def validate_role_fields(self):
        """Individuals need name and CPF, organizations need name and CNPJ."""
        if self.account_type == "individual":
            self.full_name = _required_text(self.full_name, "fullName")
            self.cpf = _required_text(self.cpf, "cpf")
        else:
            self.organization_name = _required_text(self.organization_name, "organizationName")
            self.cnpj = _required_text(self.cnpj, "cnpj")
        return self


class LoginRequest(RequestModel):
    """Credentials presented at login."""

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UpdateProfileRequest(RequestModel):
    """Mutable profile fields; a blank value clears the field."""

    full_name: Optional[str] = Field(None, alias="fullName", max_length=200)
    phone: Optional[str] = Field(None, max_length=40)
    address: Optional[str] = Field(None, max_length=500)


class MediaUpload(BaseModel):
    """A file already persisted by the storage collaborator."""

    file_ref: str = Field(..., min_length=1, description="Stored-file reference")
    content_type: str = Field(..., description="Declared content type")

    @field_validator('content_type')
    @classmethod
    def validate_content_type(cls, v):
        """Only the supported image and video types are accepted."""
        v = (v or "").lower()
        if v not in ALLOWED_IMAGE_TYPES + ALLOWED_VIDEO_TYPES:
            raise ValueError('Only JPEG, PNG, WebP images and MP4, WebM, QuickTime videos are accepted')
        return v


class SubmitReportRequest(RequestModel):
    """Description fields of a new report."""

    description: str = Field(..., max_length=2000)
    category: str = Field(..., max_length=100)
    location: str = Field(..., max_length=500)
    latitude: float = Field(..., description="Decimal degrees")
    longitude: float = Field(..., description="Decimal degrees")

    @field_validator('description', 'category', 'location', mode='before')
    @classmethod
    def validate_required_text(cls, v, info):
        """Text fields must be present and non-blank."""
        return _required_text(v, info.field_name)

    @field_validator('latitude', 'longitude', mode='before')
    @classmethod
    def validate_present(cls, v, info):
        """Coordinates are mandatory."""
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError(f'{info.field_name} is required')
        return v

    @field_validator('latitude')
    @classmethod
    def validate_latitude(cls, v):
        """Latitude must be a finite number within [-90, 90]."""
        if not math.isfinite(v) or not -90 <= v <= 90:
            raise ValueError('latitude must be a number between -90 and 90')
        return v

    @field_validator('longitude')
    @classmethod
    def validate_longitude(cls, v):
        """Longitude must be a finite number within [-180, 180]."""
        if not math.isfinite(v) or not -180 <= v <= 180:
            raise ValueError('longitude must be a number between -180 and 180')
        return v


class ReportPath(BaseModel):
    """Path parameters for report-scoped endpoints."""

    report_id: int = Field(..., description="Report identifier")


class ActorPath(BaseModel):
    """Path parameters for account-scoped admin endpoints."""

    actor_id: int = Field(..., description="Account identifier")
