"""Dischat endpoints: servers, roles, channels, messages, threads, DMs, invites and call tokens."""

from contextlib import contextmanager
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from aliice.core.deps import (
    get_current_session,
    get_db,
    get_optional_session,
    require_csrf_header,
)
from aliice.core.permissions import PERMISSION_REGISTRY, granted_names
from aliice.schemas.auth import UserSession
from aliice.schemas.dischat import (
    AgoraTokenRequest,
    AgoraTokenResponse,
    CallInviteCreate,
    CallInviteRead,
    CategoryWithChannels,
    ChannelCreate,
    ChannelRead,
    DmCreate,
    DmList,
    DmMessageRead,
    DmOpenResponse,
    EffectivePermissions,
    InviteCreate,
    InviteRead,
    JoinResponse,
    MemberRead,
    MemberUpdate,
    MessageCreate,
    MessageRead,
    PermissionInfo,
    RoleCreate,
    RoleRead,
    RoleUpdate,
    ServerCreate,
    ServerRead,
    ServerUpdate,
    ThreadCreate,
    ThreadRead,
)
from aliice.services import agora_service, dischat_service
from aliice.services.dischat_service import (
    AlreadyMemberError,
    DischatNotFoundError,
    DischatServiceError,
    InviteUnavailableError,
)

router = APIRouter(prefix="/dischat", tags=["dischat"])
agora_router = APIRouter(prefix="/api/dischat", tags=["dischat"])


@contextmanager
def _service_errors():
    """Translate service exceptions into HTTP responses."""
    try:
        yield
    except DischatNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InviteUnavailableError as e:
        raise HTTPException(status_code=410, detail=str(e))
    except AlreadyMemberError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DischatServiceError as e:
        # Not a member, missing permission, timed out
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _member_server(db: Session, server_id: UUID, user_id: UUID):
    server = dischat_service.get_server(db, server_id)
    dischat_service.require_member(db, server.id, user_id)
    return server


# =============================================================================
# Permission registry
# =============================================================================

@router.get("/permissions", response_model=list[PermissionInfo])
def list_permission_definitions(session: UserSession = Depends(get_current_session)):
    """Every flag with its label, for role editors."""
    return [
        PermissionInfo(
            name=p.flag.name,
            value=int(p.flag),
            label=p.label,
            description=p.description,
            category=p.category.value,
        )
        for p in PERMISSION_REGISTRY
    ]


# =============================================================================
# Servers
# =============================================================================

@router.get("/servers", response_model=list[ServerRead])
def list_servers(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return dischat_service.list_my_servers(db, session.user_id)


@router.post(
    "/servers",
    response_model=ServerRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_server(
    data: ServerCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        return dischat_service.create_server(db, session.user_id, data)


@router.get("/servers/{server_id}", response_model=ServerRead)
def get_server(
    server_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        return _member_server(db, server_id, session.user_id)


@router.patch(
    "/servers/{server_id}",
    response_model=ServerRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_server(
    server_id: UUID,
    data: ServerUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        server = dischat_service.get_server(db, server_id)
        return dischat_service.update_server(db, server, session.user_id, data)


@router.delete(
    "/servers/{server_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_server(
    server_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        server = dischat_service.get_server(db, server_id)
        dischat_service.delete_server(db, server, session.user_id)


@router.get("/servers/{server_id}/permissions/me", response_model=EffectivePermissions)
def get_my_permissions(
    server_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        member = dischat_service.require_member(db, server_id, session.user_id)
        value = dischat_service.effective_permissions(db, member)
    return EffectivePermissions(permissions=value, granted=granted_names(value))


# =============================================================================
# Members
# =============================================================================

@router.get("/servers/{server_id}/members", response_model=list[MemberRead])
def list_members(
    server_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        _member_server(db, server_id, session.user_id)
    return [dischat_service.to_member_read(m) for m in dischat_service.list_members(db, server_id)]


@router.patch(
    "/servers/{server_id}/members/{member_id}",
    response_model=MemberRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_member(
    server_id: UUID,
    member_id: UUID,
    data: MemberUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        member = dischat_service.get_server_member(db, server_id, member_id)
        member = dischat_service.update_member(db, server_id, session.user_id, member, data)
    return dischat_service.to_member_read(member)


@router.delete(
    "/servers/{server_id}/members/{member_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def remove_member(
    server_id: UUID,
    member_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Leave the server (own member id) or kick another member."""
    with _service_errors():
        member = dischat_service.get_server_member(db, server_id, member_id)
        dischat_service.remove_member(db, server_id, session.user_id, member)


# =============================================================================
# Roles
# =============================================================================

@router.get("/servers/{server_id}/roles", response_model=list[RoleRead])
def list_roles(
    server_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        _member_server(db, server_id, session.user_id)
    return dischat_service.list_roles(db, server_id)


@router.post(
    "/servers/{server_id}/roles",
    response_model=RoleRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_role(
    server_id: UUID,
    data: RoleCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        dischat_service.get_server(db, server_id)
        return dischat_service.create_role(db, server_id, session.user_id, data)


@router.patch(
    "/servers/{server_id}/roles/{role_id}",
    response_model=RoleRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_role(
    server_id: UUID,
    role_id: UUID,
    data: RoleUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        role = dischat_service.get_role(db, server_id, role_id)
        return dischat_service.update_role(db, server_id, session.user_id, role, data)


@router.delete(
    "/servers/{server_id}/roles/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_role(
    server_id: UUID,
    role_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        role = dischat_service.get_role(db, server_id, role_id)
        dischat_service.delete_role(db, server_id, session.user_id, role)


@router.put(
    "/servers/{server_id}/members/{member_id}/roles/{role_id}",
    response_model=MemberRead,
    dependencies=[Depends(require_csrf_header)],
)
def assign_role(
    server_id: UUID,
    member_id: UUID,
    role_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        member = dischat_service.get_server_member(db, server_id, member_id)
        role = dischat_service.get_role(db, server_id, role_id)
        member = dischat_service.assign_role(db, server_id, session.user_id, member, role)
    return dischat_service.to_member_read(member)


@router.delete(
    "/servers/{server_id}/members/{member_id}/roles/{role_id}",
    response_model=MemberRead,
    dependencies=[Depends(require_csrf_header)],
)
def unassign_role(
    server_id: UUID,
    member_id: UUID,
    role_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        member = dischat_service.get_server_member(db, server_id, member_id)
        role = dischat_service.get_role(db, server_id, role_id)
        member = dischat_service.unassign_role(db, server_id, session.user_id, member, role)
    return dischat_service.to_member_read(member)


# =============================================================================
# Channels & messages
# =============================================================================

@router.get("/servers/{server_id}/channels", response_model=list[CategoryWithChannels])
def list_channels(
    server_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        _member_server(db, server_id, session.user_id)
    return dischat_service.list_channels(db, server_id)


@router.post(
    "/servers/{server_id}/channels",
    response_model=ChannelRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_channel(
    server_id: UUID,
    data: ChannelCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        dischat_service.get_server(db, server_id)
        return dischat_service.create_channel(db, server_id, session.user_id, data)


@router.delete(
    "/channels/{channel_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_channel(
    channel_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        channel = dischat_service.get_channel(db, channel_id)
        dischat_service.delete_channel(db, session.user_id, channel)


@router.get("/channels/{channel_id}/messages", response_model=list[MessageRead])
def list_messages(
    channel_id: UUID,
    limit: int = Query(50, ge=1, le=100),
    before: UUID | None = None,
    after: UUID | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Chronological page; before/after are message id cursors."""
    with _service_errors():
        channel = dischat_service.get_channel(db, channel_id)
        messages = dischat_service.list_messages(
            db, channel, session.user_id, limit=limit, before=before, after=after
        )
    return [dischat_service.to_message_read(m) for m in messages]


@router.post(
    "/channels/{channel_id}/messages",
    response_model=MessageRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def send_message(
    channel_id: UUID,
    data: MessageCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        channel = dischat_service.get_channel(db, channel_id)
        message = dischat_service.send_message(db, channel, session.user_id, data)
    return dischat_service.to_message_read(message)


@router.delete(
    "/channels/{channel_id}/messages/{message_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_message(
    channel_id: UUID,
    message_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        channel = dischat_service.get_channel(db, channel_id)
        dischat_service.delete_message(db, channel, session.user_id, message_id)


@router.get("/channels/{channel_id}/threads", response_model=list[ThreadRead])
def list_threads(
    channel_id: UUID,
    include_archived: bool = False,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        channel = dischat_service.get_channel(db, channel_id)
        return dischat_service.list_threads(db, channel, session.user_id, include_archived)


@router.post(
    "/channels/{channel_id}/threads",
    response_model=ThreadRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_thread(
    channel_id: UUID,
    data: ThreadCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Open a thread, optionally from a message of this channel."""
    with _service_errors():
        channel = dischat_service.get_channel(db, channel_id)
        return dischat_service.create_thread(db, channel, session.user_id, data)


# =============================================================================
# Direct messages
# =============================================================================

@router.get("/dms", response_model=DmList)
def list_dms(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    direct, groups = dischat_service.list_dms(db, session.user_id)
    return DmList(
        dms=[dischat_service.to_dm_read(db, dm, session.user_id) for dm in direct],
        group_dms=[dischat_service.to_dm_read(db, dm, session.user_id) for dm in groups],
    )


@router.post(
    "/dms",
    response_model=DmOpenResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def open_dm(
    data: DmCreate,
    response: Response,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Open a DM; an existing 1:1 conversation is returned with 200."""
    with _service_errors():
        dm, created = dischat_service.open_dm(db, session.org_id, session.user_id, data)
    if not created:
        response.status_code = status.HTTP_200_OK
    return DmOpenResponse(dm=dischat_service.to_dm_read(db, dm, session.user_id), created=created)


@router.get("/dms/{dm_id}/messages", response_model=list[DmMessageRead])
def list_dm_messages(
    dm_id: UUID,
    limit: int = Query(50, ge=1, le=100),
    before: UUID | None = None,
    after: UUID | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        dm = dischat_service.get_dm(db, dm_id)
        messages = dischat_service.list_dm_messages(
            db, dm, session.user_id, limit=limit, before=before, after=after
        )
    return [dischat_service.to_dm_message_read(m) for m in messages]


@router.post(
    "/dms/{dm_id}/messages",
    response_model=DmMessageRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def send_dm_message(
    dm_id: UUID,
    data: MessageCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        dm = dischat_service.get_dm(db, dm_id)
        message = dischat_service.send_dm_message(db, dm, session.user_id, data)
    return dischat_service.to_dm_message_read(message)


# =============================================================================
# Invites
# =============================================================================

@router.get("/servers/{server_id}/invites", response_model=list[InviteRead])
def list_invites(
    server_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        return dischat_service.list_invites(db, server_id, session.user_id)


@router.post(
    "/servers/{server_id}/invites",
    response_model=InviteRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_invite(
    server_id: UUID,
    data: InviteCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        dischat_service.get_server(db, server_id)
        return dischat_service.create_invite(db, server_id, session.user_id, data)


@router.delete(
    "/servers/{server_id}/invites/{code}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_invite(
    server_id: UUID,
    code: str,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        dischat_service.delete_invite(db, server_id, session.user_id, code)


@router.get("/invites/{code}", response_model=InviteRead)
def get_invite(
    code: str,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        return dischat_service.get_invite(db, code)


@router.post(
    "/invites/{code}/join",
    response_model=JoinResponse,
    dependencies=[Depends(require_csrf_header)],
)
def join_server(
    code: str,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    with _service_errors():
        server, member = dischat_service.join_with_invite(db, code, session.user_id)
    return JoinResponse(success=True, server=ServerRead.model_validate(server), member_id=member.id)


@router.post(
    "/channels/{channel_id}/call-invites",
    response_model=CallInviteRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_call_invite(
    channel_id: UUID,
    data: CallInviteCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Guest link into a voice or video call."""
    with _service_errors():
        channel = dischat_service.get_channel(db, channel_id)
        return dischat_service.create_call_invite(db, channel, session.user_id, data)


# =============================================================================
# RTC tokens
# =============================================================================

@agora_router.post("/agora/token", response_model=AgoraTokenResponse)
def issue_agora_token(
    data: AgoraTokenRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Token for a signed-in member, or for a guest holding a call invite code.

    Guest requests never look at the session cookie and need no CSRF header;
    the call invite code is their only credential.
    """
    session = None
    if not data.is_guest:
        require_csrf_header(request)
        session = get_optional_session(request, db)
    try:
        return agora_service.issue_token(db, data, session)
    except agora_service.AuthenticationRequiredError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except agora_service.GuestInviteError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except dischat_service.NotServerMemberError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
