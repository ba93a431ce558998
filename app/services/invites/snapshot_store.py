"""
Invite snapshot store.

Holds, per community, the last known {invite code -> cumulative uses}
mapping. Lifecycle per community:
- absent until the first successful refresh;
- replaced wholesale (never merged) on every later refresh, so deleted
  codes vanish;
- every fetch->replace runs under the community's lock.
"""

import asyncio
from collections.abc import Mapping
from types import MappingProxyType

from loguru import logger

from app.services.platform import InvitePlatform
from app.utils.exceptions import InviteFetchError


InviteSnapshot = Mapping[str, int]


class InviteSnapshotStore:
    """
    Per-community invite counter cache.

    Owned by the attribution side of the bot. Snapshots are immutable
    mappings; the only mutation is replacing the whole snapshot.
    """

    def __init__(
        self,
        platform: InvitePlatform,
        fetch_timeout: float = 10.0,
    ) -> None:
        """
        Initialize store.

        Args:
            platform: Platform invite API
            fetch_timeout: Upper bound for one live fetch in seconds
        """
        self.platform = platform
        self.fetch_timeout = fetch_timeout
        self._snapshots: dict[int, InviteSnapshot] = {}
        self._locks: dict[int, asyncio.Lock] = {}

    def get(self, community_id: int) -> InviteSnapshot | None:
        """
        Last stored snapshot without fetching.

        Returns:
            Snapshot, or None before the first refresh (no baseline)
        """
        return self._snapshots.get(community_id)

    def lock(self, community_id: int) -> asyncio.Lock:
        """Lock guarding fetch->replace for one community."""
        lock = self._locks.get(community_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[community_id] = lock
        return lock

    async def refresh(self, community_id: int) -> InviteSnapshot:
        """
        Fetch live counters and replace the stored snapshot.

        Raises:
            InviteFetchError: Fetch failed or timed out; the previous
                snapshot is kept
        """
        _, new = await self.exchange(community_id)
        return new

    async def exchange(
        self, community_id: int
    ) -> tuple[InviteSnapshot | None, InviteSnapshot]:
        """
        Replace the snapshot and return the (old, new) pair used.

        Both values are captured under the community lock, so the caller's
        diff sees exactly the baseline this call replaced.

        Raises:
            InviteFetchError: Fetch failed or timed out; nothing replaced
        """
        async with self.lock(community_id):
            old = self._snapshots.get(community_id)
            new = await self._fetch(community_id)
            self._replace(community_id, old, new)
            return old, new

    async def _fetch(self, community_id: int) -> InviteSnapshot:
        try:
            invites = await asyncio.wait_for(
                self.platform.list_invites(community_id),
                timeout=self.fetch_timeout,
            )
        except asyncio.TimeoutError as e:
            raise InviteFetchError(
                community_id, f"timed out after {self.fetch_timeout}s"
            ) from e
        except Exception as e:
            raise InviteFetchError(community_id, str(e)) from e

        return MappingProxyType(
            {invite.code: max(0, int(invite.uses or 0)) for invite in invites}
        )

    def _replace(
        self,
        community_id: int,
        old: InviteSnapshot | None,
        new: InviteSnapshot,
    ) -> None:
        if old:
            regressed = [
                code for code, uses in new.items()
                if uses < old.get(code, 0)
            ]
            if regressed:
                logger.warning(
                    f"Invite counters went down for community {community_id}: "
                    f"{', '.join(sorted(regressed))}"
                )

        self._snapshots[community_id] = new
        logger.debug(
            f"Invite snapshot replaced for community {community_id}, "
            f"codes: {len(new)}"
        )
