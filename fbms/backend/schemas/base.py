"""Shared schema bases."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ORMModel(BaseModel):
    """Response model populated straight from ORM objects."""

    model_config = ConfigDict(from_attributes=True)


class MessageOut(BaseModel):
    detail: str
