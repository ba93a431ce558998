"""
discord.py implementations of the platform interfaces.

Every call is time-boxed. Messaging failures are logged and reported as
False/None so callers can treat them as transient.
"""

import asyncio

import discord
from loguru import logger

from app.services.platform import (
    CreatedInvite,
    GuildMemberInfo,
    InviteUsage,
    MessageContent,
)


def to_embed(content: MessageContent) -> discord.Embed:
    """Render MessageContent as a Discord embed."""
    embed = discord.Embed(
        title=content.title,
        description=content.description or None,
        color=content.color,
    )
    for name, value in content.fields:
        embed.add_field(name=name, value=value, inline=False)
    if content.footer:
        embed.set_footer(text=content.footer)
    return embed


async def resolve_channel(
    client: discord.Client, channel_id: int
) -> discord.abc.Messageable | None:
    """Cached channel, fetched when not cached. None if not text-based."""
    channel = client.get_channel(int(channel_id))
    if channel is None:
        try:
            channel = await client.fetch_channel(int(channel_id))
        except (discord.NotFound, discord.Forbidden, discord.HTTPException) as e:
            logger.warning(f"Channel {channel_id} unavailable: {e}")
            return None

    if not isinstance(channel, discord.abc.Messageable):
        logger.warning(f"Channel {channel_id} is not a text channel")
        return None
    return channel


class DiscordInvitePlatform:
    """Invite and member listing API backed by discord.py."""

    def __init__(self, client: discord.Client) -> None:
        """Initialize platform."""
        self.client = client

    async def _guild(self, community_id: int) -> discord.Guild:
        guild = self.client.get_guild(int(community_id))
        if guild is None:
            guild = await self.client.fetch_guild(int(community_id))
        return guild

    async def list_invites(self, community_id: int) -> list[InviteUsage]:
        """Every live invite of the guild (needs Manage Server)."""
        guild = await self._guild(community_id)
        invites = await guild.invites()
        return [
            InviteUsage(code=invite.code, uses=invite.uses or 0)
            for invite in invites
        ]

    async def create_invite(
        self, channel_id: int, reason: str | None = None
    ) -> CreatedInvite:
        """Permanent, unlimited, unique invite to a channel."""
        channel = await resolve_channel(self.client, channel_id)
        if channel is None or not hasattr(channel, "create_invite"):
            raise ValueError(f"Channel {channel_id} cannot hold invites")

        invite = await channel.create_invite(
            max_age=0,
            max_uses=0,
            unique=True,
            reason=reason,
        )
        return CreatedInvite(code=invite.code, url=invite.url)

    async def list_members(self, community_id: int) -> list[GuildMemberInfo]:
        """Every guild member (needs the Server Members intent)."""
        guild = await self._guild(community_id)
        return [
            GuildMemberInfo(
                discord_id=str(member.id),
                username=str(member),
                display_name=member.display_name or "",
                is_bot=member.bot,
            )
            async for member in guild.fetch_members(limit=None)
        ]


class DiscordMessagingTransport:
    """Messaging transport backed by discord.py."""

    def __init__(self, client: discord.Client, timeout: float = 10.0) -> None:
        """
        Initialize transport.

        Args:
            client: Connected discord client
            timeout: Upper bound for one platform call in seconds
        """
        self.client = client
        self.timeout = timeout

    async def send_to_user(self, user_id: str, content: MessageContent) -> bool:
        """DM a user. False when DMs are closed or the user is unknown."""
        try:
            user = self.client.get_user(int(user_id))
            if user is None:
                user = await asyncio.wait_for(
                    self.client.fetch_user(int(user_id)), timeout=self.timeout
                )
            await asyncio.wait_for(
                user.send(embed=to_embed(content)), timeout=self.timeout
            )
            return True
        except discord.Forbidden:
            logger.info(f"DM to {user_id} refused (DMs closed)")
            return False
        except (discord.HTTPException, asyncio.TimeoutError) as e:
            logger.warning(f"DM to {user_id} failed: {e}")
            return False

    async def send_to_channel(
        self, channel_id: int, content: MessageContent
    ) -> str | None:
        """Post an embed to a channel."""
        channel = await resolve_channel(self.client, channel_id)
        if channel is None:
            return None
        try:
            message = await asyncio.wait_for(
                channel.send(embed=to_embed(content)), timeout=self.timeout
            )
            return str(message.id)
        except (discord.HTTPException, asyncio.TimeoutError) as e:
            logger.warning(f"Post to channel {channel_id} failed: {e}")
            return None

    async def _fetch_message(
        self, channel_id: int, message_id: str
    ) -> discord.Message | None:
        channel = await resolve_channel(self.client, channel_id)
        if channel is None:
            return None
        try:
            return await asyncio.wait_for(
                channel.fetch_message(int(message_id)), timeout=self.timeout
            )
        except (discord.HTTPException, asyncio.TimeoutError) as e:
            logger.warning(
                f"Message {message_id} in channel {channel_id} unavailable: {e}"
            )
            return None

    async def edit_message(
        self, channel_id: int, message_id: str, content: MessageContent
    ) -> bool:
        """Replace a message's embed."""
        message = await self._fetch_message(channel_id, message_id)
        if message is None:
            return False
        try:
            await asyncio.wait_for(
                message.edit(content=None, embed=to_embed(content)),
                timeout=self.timeout,
            )
            return True
        except (discord.HTTPException, asyncio.TimeoutError) as e:
            logger.warning(f"Edit of message {message_id} failed: {e}")
            return False

    async def find_own_message(
        self, channel_id: int, title_prefix: str, limit: int = 50
    ) -> str | None:
        """Latest message by this bot whose embed title starts with prefix."""
        channel = await resolve_channel(self.client, channel_id)
        if channel is None or self.client.user is None:
            return None

        async def _search() -> str | None:
            async for message in channel.history(limit=limit):
                if message.author.id != self.client.user.id:
                    continue
                if not message.embeds:
                    continue
                title = message.embeds[0].title or ""
                if title.startswith(title_prefix):
                    return str(message.id)
            return None

        try:
            return await asyncio.wait_for(_search(), timeout=self.timeout)
        except (discord.HTTPException, asyncio.TimeoutError) as e:
            logger.warning(f"History scan of channel {channel_id} failed: {e}")
            return None

    async def pin_message(self, channel_id: int, message_id: str) -> bool:
        """Pin a message unless it is already pinned."""
        message = await self._fetch_message(channel_id, message_id)
        if message is None:
            return False
        if message.pinned:
            return True
        try:
            await asyncio.wait_for(message.pin(), timeout=self.timeout)
            return True
        except (discord.HTTPException, asyncio.TimeoutError) as e:
            logger.warning(f"Pin of message {message_id} failed: {e}")
            return False
