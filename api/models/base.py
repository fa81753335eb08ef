# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base entity models with common fields and validation.
"""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class BaseEntity(BaseModel):
    """Base entity with common fields for all domain objects."""

    model_config = ConfigDict(
        # Allow population by field name or alias
        populate_by_name=True,
        # Use enum values instead of enum objects
        use_enum_values=True,
        # Validate assignment
        validate_assignment=True
    )

    id: Optional[int] = Field(None, description="Store-assigned integer identifier")
    created_at: datetime = Field(default_factory=utc_now, description="Creation timestamp")
    schema_version: int = Field(default=1, description="Schema version for migrations")
