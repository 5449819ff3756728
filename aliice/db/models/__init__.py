"""SQLAlchemy ORM models."""

from aliice.db.models.accounts import (
    AccountAdhocRequirement,
    AccountClient,
    AccountDocument,
)
from aliice.db.models.auth import Membership, Organization, User
from aliice.db.models.chat import ChatConversation, ChatMessage
from aliice.db.models.crm import Company, Contact, Project
from aliice.db.models.danote import (
    DanoteBoard,
    DanoteComment,
    DanoteElement,
    DanoteMention,
    DanoteNotification,
)
from aliice.db.models.dischat import (
    DischatCallInvite,
    DischatCategory,
    DischatChannel,
    DischatDmChannel,
    DischatDmMember,
    DischatDmMessage,
    DischatInvite,
    DischatMember,
    DischatMemberRole,
    DischatMessage,
    DischatRole,
    DischatServer,
    DischatThread,
)
from aliice.db.models.marketing import (
    MarketingCampaign,
    MarketingExpenseLog,
    MarketingLead,
    MarketingReport,
)
from aliice.db.models.patients import Patient, Task

__all__ = [
    "AccountAdhocRequirement",
    "AccountClient",
    "AccountDocument",
    "ChatConversation",
    "ChatMessage",
    "Company",
    "Contact",
    "DanoteBoard",
    "DanoteComment",
    "DanoteElement",
    "DanoteMention",
    "DanoteNotification",
    "DischatCallInvite",
    "DischatCategory",
    "DischatChannel",
    "DischatDmChannel",
    "DischatDmMember",
    "DischatDmMessage",
    "DischatInvite",
    "DischatMember",
    "DischatMemberRole",
    "DischatMessage",
    "DischatRole",
    "DischatServer",
    "DischatThread",
    "MarketingCampaign",
    "MarketingExpenseLog",
    "MarketingLead",
    "MarketingReport",
    "Membership",
    "Organization",
    "Patient",
    "Project",
    "Task",
    "User",
]
