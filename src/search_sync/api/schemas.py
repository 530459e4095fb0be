"""Pydantic request/response models for the HTTP API."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="healthy or degraded")
    version: str = Field(description="Service version")
    qdrant_connected: bool = Field(description="Qdrant connectivity")


class ReindexResponse(BaseModel):
    """Response for a full reindex request."""

    status: str = Field(description="enqueued")
    start_time: int = Field(description="Run start time (epoch ms)")


class ProcessingStateResponse(BaseModel):
    """Last reported terminal state of a full reindex run."""

    state: str
    message: str
    index_name: str
    timestamp: int
