"""Agora RTC tokens for Dischat voice/video calls.

Members join with a uid derived from their user id; guests join through a
call invite for one channel.
"""

import logging
import random
import time
from uuid import UUID

from agora_token_builder import RtcTokenBuilder
from sqlalchemy.orm import Session

from aliice.core.config import settings
from aliice.core.time_utils import as_utc, utcnow
from aliice.db.models import DischatCallInvite
from aliice.schemas.auth import UserSession
from aliice.schemas.dischat import AgoraTokenRequest, AgoraTokenResponse
from aliice.services import dischat_service

logger = logging.getLogger(__name__)

PUBLISHER_ROLE = 1
UID_MODULUS = 100_000_000
GUEST_UID_RANGE = 100_000
CHANNEL_PART_LENGTH = 12


class AgoraTokenError(Exception):
    """Base exception for token requests."""

    pass


class AuthenticationRequiredError(AgoraTokenError):
    """Neither a session nor a guest code was supplied."""

    pass


class GuestInviteError(AgoraTokenError):
    """Guest code is unknown, for another channel, expired or used up."""

    pass


def channel_name(channel_id: str, server_id: str | None) -> str:
    """Alphanumeric RTC channel name: "ch" + 12 chars of server (or "dm") + 12 of channel."""
    server_part = (server_id or "dm").replace("-", "")[:CHANNEL_PART_LENGTH]
    channel_part = channel_id.replace("-", "")[:CHANNEL_PART_LENGTH]
    return f"ch{server_part}{channel_part}"


def uid_for_user(user_id: UUID) -> int:
    """Stable numeric uid from the first 8 hex digits of the user id."""
    return int(user_id.hex[:8], 16) % UID_MODULUS


def build_token(channel: str, uid: int) -> str:
    """Publisher token valid for AGORA_TOKEN_TTL_SECONDS, or "" without a certificate."""
    if not settings.AGORA_APP_CERTIFICATE:
        return ""
    privilege_expired_ts = int(time.time()) + settings.AGORA_TOKEN_TTL_SECONDS
    return RtcTokenBuilder.buildTokenWithUid(
        settings.AGORA_APP_ID,
        settings.AGORA_APP_CERTIFICATE,
        channel,
        uid,
        PUBLISHER_ROLE,
        privilege_expired_ts,
    )


def _parse_uuid(value: str | None) -> UUID | None:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def _redeem_guest_invite(db: Session, code: str, channel_id: str) -> DischatCallInvite:
    channel_uuid = _parse_uuid(channel_id)
    invite = None
    if channel_uuid is not None:
        invite = db.query(DischatCallInvite).filter(
            DischatCallInvite.code == code,
            DischatCallInvite.channel_id == channel_uuid,
        ).first()
    if invite is None:
        raise GuestInviteError("Invalid invite code")
    if invite.expires_at is not None and as_utc(invite.expires_at) < utcnow():
        raise GuestInviteError("Invite has expired")
    if invite.max_uses and invite.uses >= invite.max_uses:
        raise GuestInviteError("Invite has reached max uses")

    invite.uses = invite.uses + 1
    db.commit()
    return invite


def issue_token(
    db: Session,
    data: AgoraTokenRequest,
    session: UserSession | None,
) -> AgoraTokenResponse:
    """
    Token for a member (session present, not a guest request) or a guest code holder.

    Raises:
        ValueError: channel_id missing
        NotServerMemberError: session user is not in server_id
        GuestInviteError: guest code rejected
        AuthenticationRequiredError: no session and no guest code
    """
    if not data.channel_id:
        raise ValueError("Channel ID is required")

    if session is not None and not data.is_guest:
        if data.server_id:
            server_uuid = _parse_uuid(data.server_id)
            if server_uuid is None or dischat_service.get_member(db, server_uuid, session.user_id) is None:
                raise dischat_service.NotServerMemberError("Not a member of this server")
        uid = uid_for_user(session.user_id)
        user_name = session.full_name or "User"
    elif data.is_guest and data.guest_code:
        _redeem_guest_invite(db, data.guest_code, data.channel_id)
        uid = data.uid if data.uid is not None else random.randrange(GUEST_UID_RANGE)
        user_name = f"Guest_{uid}"
    else:
        raise AuthenticationRequiredError("Authentication required")

    channel = channel_name(data.channel_id, data.server_id)
    token = build_token(channel, uid)
    logger.info("Issued RTC token", extra={"channel": channel, "uid": uid, "guest": data.is_guest})
    return AgoraTokenResponse(
        appId=settings.AGORA_APP_ID,
        channel=channel,
        token=token,
        uid=uid,
        userName=user_name,
    )
