"""
Platform interfaces.

Platform-neutral contracts for the community platform (invite API, member
listing) and the messaging transport. The Discord implementation lives in
bot/platform/; tests use in-memory fakes.
"""

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class InviteUsage:
    """Live invite code with its cumulative use counter."""
    code: str
    uses: int


@dataclass(frozen=True)
class CreatedInvite:
    """Invite link created on the platform."""
    code: str
    url: str


@dataclass(frozen=True)
class GuildMemberInfo:
    """Member listing row used by the backfill."""
    discord_id: str
    username: str
    display_name: str = ""
    is_bot: bool = False


@dataclass(frozen=True)
class MessageContent:
    """
    Platform-neutral rich message.

    Rendered as an embed by the Discord transport.
    """
    title: str
    description: str = ""
    fields: tuple[tuple[str, str], ...] = field(default_factory=tuple)
    color: int | None = None
    footer: str | None = None


class InvitePlatform(Protocol):
    """Platform invite API."""

    async def list_invites(self, community_id: int) -> list[InviteUsage]:
        """Return every live invite of the community with its use counter."""
        ...

    async def create_invite(
        self, channel_id: int, reason: str | None = None
    ) -> CreatedInvite:
        """Create a permanent, unlimited, unique invite for a channel."""
        ...


class MemberListingPlatform(Protocol):
    """Platform member listing."""

    async def list_members(self, community_id: int) -> list[GuildMemberInfo]:
        """Return every current member of the community."""
        ...


class MessagingTransport(Protocol):
    """Send/edit messages to users and channels."""

    async def send_to_user(self, user_id: str, content: MessageContent) -> bool:
        """Deliver a direct message. True only on confirmed delivery."""
        ...

    async def send_to_channel(
        self, channel_id: int, content: MessageContent
    ) -> str | None:
        """Post to a channel. Returns the message id, None on failure."""
        ...

    async def edit_message(
        self, channel_id: int, message_id: str, content: MessageContent
    ) -> bool:
        """Replace the content of an existing message."""
        ...

    async def find_own_message(
        self, channel_id: int, title_prefix: str, limit: int = 50
    ) -> str | None:
        """Find a recent message posted by us whose title starts with prefix."""
        ...

    async def pin_message(self, channel_id: int, message_id: str) -> bool:
        """Pin a message (no-op if already pinned)."""
        ...
