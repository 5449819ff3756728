"""Global search response schemas."""

from uuid import UUID

from pydantic import BaseModel


class SearchHit(BaseModel):
    id: UUID
    title: str
    subtitle: str | None = None


class SearchResponse(BaseModel):
    query: str
    companies: list[SearchHit] = []
    contacts: list[SearchHit] = []
    projects: list[SearchHit] = []
    patients: list[SearchHit] = []
    boards: list[SearchHit] = []
