# backend/cla_backend/api/v1/models.py
"""Request and response bodies specific to the v1 HTTP API."""

from pydantic import BaseModel, Field


class InvalidateProjectRequest(BaseModel):
    note: str = Field(..., description="Reason recorded on every invalidated signature")


class InvalidateProjectResponse(BaseModel):
    project_id: str
    invalidated_count: int


class ClaManagerRequest(BaseModel):
    lf_username: str = Field(..., description="LF username of the CLA manager")
