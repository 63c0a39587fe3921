"""
API Schemas package.

Pydantic models for request/response validation.
"""

from .jobs import (
    JobCreateRequest,
    PriorityUpdateRequest,
    JobResponse,
    JobCreateResponse,
    JobUpdateResponse,
    JobListResponse,
    JobDeleteResponse,
    PatternResponse,
    StatsResponse,
)

__all__ = [
    "JobCreateRequest",
    "PriorityUpdateRequest",
    "JobResponse",
    "JobCreateResponse",
    "JobUpdateResponse",
    "JobListResponse",
    "JobDeleteResponse",
    "PatternResponse",
    "StatsResponse",
]
