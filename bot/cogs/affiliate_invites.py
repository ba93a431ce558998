"""
Affiliate invites cog.

Keeps invite snapshots fresh, attributes member joins and hands out
personal invite links through the program message button.
"""

import discord
from discord.ext import commands
from loguru import logger

from app.config.constants import (
    AFFILIATE_BUTTON_CUSTOM_ID,
    PROGRAM_MESSAGE_SEARCH_LIMIT,
)
from app.services.leaderboard.messages import (
    affiliate_info_message,
    affiliate_program_message,
    personal_invite_reply,
)
from app.services.leaderboard.publisher import ensure_channel_message
from app.utils.exceptions import InviteFetchError
from bot.initialization.services import AffiliateServices
from bot.platform.discord_adapter import resolve_channel, to_embed


class PersonalInviteView(discord.ui.View):
    """Persistent view with the "Get my Invite URL" button."""

    def __init__(self, cog: "AffiliateInvitesCog") -> None:
        super().__init__(timeout=None)
        self.cog = cog

    @discord.ui.button(
        label="Get my Invite URL",
        style=discord.ButtonStyle.primary,
        custom_id=AFFILIATE_BUTTON_CUSTOM_ID,
    )
    async def get_invite(
        self, interaction: discord.Interaction, button: discord.ui.Button
    ) -> None:
        await self.cog.handle_get_invite(interaction)


class AffiliateInvitesCog(commands.Cog):
    """Invite tracking and personal invite links."""

    def __init__(self, bot: commands.Bot, services: AffiliateServices) -> None:
        self.bot = bot
        self.services = services
        self.config = services.config
        self.ready = False

    async def cog_load(self) -> None:
        # Buttons on messages posted before a restart keep working
        self.bot.add_view(PersonalInviteView(self))

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        if self.ready:
            return

        await self.ensure_program_messages()
        for guild_id in self.services.tracked_guild_ids(self.bot):
            await self.refresh_snapshot(guild_id)

        self.ready = True
        logger.info("Affiliate invites ready")

    async def refresh_snapshot(self, guild_id: int) -> None:
        """Refresh one guild's snapshot, logging failures."""
        try:
            await self.services.snapshot_store.refresh(guild_id)
        except InviteFetchError as e:
            logger.warning(str(e))

    async def ensure_program_messages(self) -> None:
        """Create or refresh the program message and the info message."""
        fee = self.config.referral_fee_eur

        if self.config.affiliate_channel_id:
            await self._ensure_program_message(
                self.config.affiliate_channel_id
            )

        if self.config.affiliate_info_channel_id:
            await ensure_channel_message(
                self.services.transport,
                self.config.affiliate_info_channel_id,
                affiliate_info_message(fee),
                pin=self.config.affiliate_info_pin_message,
            )

    async def _ensure_program_message(self, channel_id: int) -> None:
        content = affiliate_program_message(self.config.referral_fee_eur)
        channel = await resolve_channel(self.bot, channel_id)
        if channel is None:
            return

        embed = to_embed(content)
        view = PersonalInviteView(self)
        message_id = await self.services.transport.find_own_message(
            channel_id, content.title, limit=PROGRAM_MESSAGE_SEARCH_LIMIT
        )

        try:
            if message_id:
                message = await channel.fetch_message(int(message_id))
                await message.edit(embed=embed, view=view)
            else:
                await channel.send(embed=embed, view=view)
        except discord.HTTPException as e:
            logger.warning(f"Failed to post affiliate program message: {e}")

    @commands.Cog.listener()
    async def on_invite_create(self, invite: discord.Invite) -> None:
        if invite.guild is None or not self.config.guild_allowed(invite.guild.id):
            return
        await self.refresh_snapshot(invite.guild.id)

    @commands.Cog.listener()
    async def on_invite_delete(self, invite: discord.Invite) -> None:
        if invite.guild is None or not self.config.guild_allowed(invite.guild.id):
            return
        await self.refresh_snapshot(invite.guild.id)

    @commands.Cog.listener()
    async def on_member_join(self, member: discord.Member) -> None:
        if member.bot or not self.config.guild_allowed(member.guild.id):
            return

        logger.info(f"Member joined: {member} ({member.id}) in {member.guild.id}")

        report = await self.services.join_handler.handle_join(
            community_id=member.guild.id,
            member_id=str(member.id),
            username=str(member),
            display_name=member.display_name,
            joined_at=member.joined_at,
        )

        if not report.recorded:
            logger.debug(
                f"Join {member.id} not recorded: "
                f"{report.attribution.outcome} / {report.write.error_code}"
            )

    async def handle_get_invite(self, interaction: discord.Interaction) -> None:
        """Button handler: reply with the member's personal invite link."""
        if not self.ready:
            await interaction.response.send_message(
                "⚠️ Bot is restarting. Try again in ~10 seconds.",
                ephemeral=True,
            )
            return

        guild = interaction.guild
        if guild is None:
            await interaction.response.send_message(
                "⛔ This button only works in a server.", ephemeral=True
            )
            return
        if not self.config.guild_allowed(guild.id):
            await interaction.response.send_message(
                "⛔ Wrong server.", ephemeral=True
            )
            return

        await interaction.response.defer(ephemeral=True, thinking=True)

        result = await self.services.personal_invites.get_or_create(
            str(interaction.user.id), community_id=guild.id
        )

        if result.success:
            await interaction.followup.send(
                personal_invite_reply(result.data["url"]), ephemeral=True
            )
        else:
            await interaction.followup.send(
                "❌ Could not create your invite link. Ask staff.",
                ephemeral=True,
            )
