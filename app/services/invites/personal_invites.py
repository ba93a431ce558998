"""
Personal invite service.

Issues one permanent invite link per member. The link is created lazily the
first time the member asks for it and reused forever after.
"""

import asyncio
from collections.abc import Callable

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.base_service import ServiceResult
from app.services.invites.invite_directory import InviteDirectory
from app.services.invites.snapshot_store import InviteSnapshotStore
from app.services.platform import InvitePlatform
from app.utils.exceptions import InviteFetchError, PersonalInviteError


class PersonalInviteService:
    """
    Personal invite issuing.

    Requests for the same member are serialized, so a double click never
    creates two links.
    """

    def __init__(
        self,
        platform: InvitePlatform,
        store: InviteSnapshotStore,
        session_factory: Callable[[], AsyncSession],
        channel_id: int | None,
        community_id: int | None = None,
        create_timeout: float = 10.0,
    ) -> None:
        """
        Initialize service.

        Args:
            platform: Platform invite API
            store: Snapshot store, re-seeded after a new link is created
            session_factory: async_session_maker or compatible factory
            channel_id: Channel new invites point to
            community_id: Default guild whose snapshot is re-seeded
            create_timeout: Upper bound for invite creation in seconds
        """
        self.platform = platform
        self.store = store
        self.session_factory = session_factory
        self.community_id = community_id
        self.channel_id = channel_id
        self.create_timeout = create_timeout
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, owner_id: str) -> asyncio.Lock:
        lock = self._locks.get(owner_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[owner_id] = lock
        return lock

    async def get_or_create(
        self, owner_id: str, community_id: int | None = None
    ) -> ServiceResult:
        """
        Return the member's personal invite URL, creating it if needed.

        Args:
            owner_id: Discord ID of the requesting member
            community_id: Guild the request came from

        Returns:
            ServiceResult with data={"url", "code", "created"} on success;
            error_code "not_configured" or "create_failed" otherwise
        """
        owner_id = str(owner_id)

        async with self._lock_for(owner_id):
            async with self.session_factory() as session:
                directory = InviteDirectory(session)

                existing = await directory.get_for_owner(owner_id)
                if existing:
                    return ServiceResult.ok({
                        "url": existing.personal_url,
                        "code": existing.code,
                        "created": False,
                    })

                if not self.channel_id:
                    logger.error(
                        "Personal invite requested but AFFILIATE_CHANNEL_ID "
                        "is not configured"
                    )
                    return ServiceResult.fail(
                        "not_configured", "Affiliate channel is not configured"
                    )

                try:
                    invite = await self._create_invite(owner_id)
                    await directory.create(
                        code=invite.code,
                        owner_discord_id=owner_id,
                        personal_url=invite.url,
                    )
                    await session.commit()
                except (PersonalInviteError, SQLAlchemyError) as e:
                    await session.rollback()
                    logger.error(
                        f"Failed to issue personal invite for {owner_id}: {e}"
                    )
                    return ServiceResult.fail("create_failed", str(e))

        logger.info(f"Issued personal invite {invite.code} to {owner_id}")
        await self._reseed_snapshot(community_id or self.community_id)

        return ServiceResult.ok(
            {"url": invite.url, "code": invite.code, "created": True}
        )

    async def _create_invite(self, owner_id: str):
        try:
            return await asyncio.wait_for(
                self.platform.create_invite(
                    self.channel_id,
                    reason=f"Affiliate personal invite for {owner_id}",
                ),
                timeout=self.create_timeout,
            )
        except asyncio.TimeoutError as e:
            raise PersonalInviteError(
                f"invite creation timed out after {self.create_timeout}s"
            ) from e
        except Exception as e:
            raise PersonalInviteError(str(e)) from e

    async def _reseed_snapshot(self, community_id: int | None) -> None:
        # New code must be in the baseline before its first use
        if community_id is None:
            return
        try:
            await self.store.refresh(community_id)
        except InviteFetchError as e:
            logger.warning(f"Snapshot re-seed after invite creation failed: {e}")
