"""Pydantic schemas for API request/response models."""

from proposal_api.schemas.auth import UserSession

__all__ = ["UserSession"]
