"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel

from aliice.db.enums import Role


class UserSession(BaseModel):
    """
    Full session context for authenticated requests.

    Returned by the get_current_session dependency and carries
    everything needed for authorization and tenant scoping.
    """
    user_id: UUID
    org_id: UUID
    role: Role
    email: str
    full_name: str


class MeResponse(BaseModel):
    """Response schema for GET /auth/me."""
    user_id: UUID
    email: str
    full_name: str
    avatar_url: str | None
    org_id: UUID
    org_name: str
    role: Role


class UserListItem(BaseModel):
    """Roster entry used by mention pickers and assignee dropdowns."""
    id: UUID
    full_name: str
    email: str

    model_config = {"from_attributes": True}
