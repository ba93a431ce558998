"""
Leaderboard publisher.

Keeps one pinned live leaderboard message per channel up to date and posts
final results for closed months.
"""

from loguru import logger

from app.config.constants import (
    LEADERBOARD_MESSAGE_SEARCH_LIMIT,
    LEADERBOARD_TITLE_PREFIX,
    PROGRAM_MESSAGE_SEARCH_LIMIT,
)
from app.services.leaderboard.aggregation import Leaderboards
from app.services.leaderboard.messages import (
    final_results_message,
    live_leaderboard_message,
)
from app.services.platform import MessageContent, MessagingTransport


class LeaderboardPublisher:
    """Publishes leaderboards through the messaging transport."""

    def __init__(
        self,
        transport: MessagingTransport,
        leaderboard_channel_id: int,
        winners_channel_id: int,
    ) -> None:
        """
        Initialize publisher.

        Args:
            transport: Messaging transport
            leaderboard_channel_id: Channel holding the pinned live board
            winners_channel_id: Channel receiving final results
        """
        self.transport = transport
        self.leaderboard_channel_id = leaderboard_channel_id
        self.winners_channel_id = winners_channel_id
        self._live_message_id: str | None = None

    async def render_live(self, leaderboards: Leaderboards) -> bool:
        """
        Update the pinned live leaderboard.

        Reuses the known message, otherwise finds our latest leaderboard post
        in the channel, otherwise posts and pins a new one. On failure the
        previously rendered message is left as is.

        Returns:
            True if the board was updated
        """
        content = live_leaderboard_message(leaderboards)
        channel_id = self.leaderboard_channel_id

        if self._live_message_id:
            if await self.transport.edit_message(
                channel_id, self._live_message_id, content
            ):
                return True
            # Message deleted or unreachable, look it up again
            self._live_message_id = None

        message_id = await self.transport.find_own_message(
            channel_id,
            LEADERBOARD_TITLE_PREFIX,
            limit=LEADERBOARD_MESSAGE_SEARCH_LIMIT,
        )
        if message_id:
            await self.transport.pin_message(channel_id, message_id)
            if not await self.transport.edit_message(
                channel_id, message_id, content
            ):
                logger.warning(
                    f"Failed to update live leaderboard {message_id} "
                    f"for {leaderboards.month_key}"
                )
                return False
            self._live_message_id = message_id
            return True

        message_id = await self.transport.send_to_channel(channel_id, content)
        if not message_id:
            logger.warning(
                f"Failed to post live leaderboard for {leaderboards.month_key}"
            )
            return False

        await self.transport.pin_message(channel_id, message_id)
        self._live_message_id = message_id
        logger.info(
            f"Posted live leaderboard {message_id} for {leaderboards.month_key}"
        )
        return True

    async def publish_final(self, leaderboards: Leaderboards) -> str | None:
        """
        Post final results of a closed month.

        Returns:
            Message id, or None if the post failed
        """
        message_id = await self.transport.send_to_channel(
            self.winners_channel_id, final_results_message(leaderboards)
        )
        if message_id:
            logger.info(
                f"Published final results for {leaderboards.month_key}: "
                f"{message_id}"
            )
        return message_id


async def ensure_channel_message(
    transport: MessagingTransport,
    channel_id: int,
    content: MessageContent,
    pin: bool = False,
) -> str | None:
    """
    Create or refresh a standing informational message.

    The message is matched by its title among our recent posts.

    Returns:
        Message id, or None if it could not be posted
    """
    message_id = await transport.find_own_message(
        channel_id, content.title, limit=PROGRAM_MESSAGE_SEARCH_LIMIT
    )

    if message_id:
        await transport.edit_message(channel_id, message_id, content)
    else:
        message_id = await transport.send_to_channel(channel_id, content)
        if not message_id:
            logger.warning(
                f"Failed to post '{content.title}' to channel {channel_id}"
            )
            return None

    if pin:
        await transport.pin_message(channel_id, message_id)
    return message_id
