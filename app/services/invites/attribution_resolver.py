"""
Attribution resolver.

Given the stored invite snapshot and a freshly fetched one, picks the
single invite code most likely used by a joining member.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from loguru import logger

from app.services.invites.snapshot_store import InviteSnapshot, InviteSnapshotStore
from app.utils.exceptions import InviteFetchError


class AttributionOutcome(StrEnum):
    """Resolution outcome."""

    ATTRIBUTED = "attributed"
    NO_BASELINE = "no_baseline"  # first join after start, nothing to diff
    FETCH_FAILED = "fetch_failed"  # live invite list unavailable
    NO_USABLE_DELTA = "no_usable_delta"  # no counter moved
    AMBIGUOUS = "ambiguous"  # several codes tie for the largest delta
    UNKNOWN_OWNER = "unknown_owner"  # winning code is not a personal invite
    LOOKUP_FAILED = "lookup_failed"  # invite directory unavailable


@dataclass(frozen=True)
class AttributionResult:
    """Decision for one join."""

    outcome: AttributionOutcome
    community_id: int
    invitee_id: str
    code: str | None = None
    inviter_id: str | None = None
    delta: int = 0
    candidates: tuple[str, ...] = ()

    @property
    def attributed(self) -> bool:
        return self.outcome == AttributionOutcome.ATTRIBUTED


@dataclass(frozen=True)
class InviteDiff:
    """Outcome of comparing two snapshots."""

    code: str | None
    delta: int
    tied_codes: tuple[str, ...] = ()

    @property
    def ambiguous(self) -> bool:
        return len(self.tied_codes) > 1


class InviteOwnerLookup(Protocol):
    """Resolves an invite code to the member who owns it."""

    async def owner_of(self, code: str) -> str | None:
        ...


def pick_used_invite(old: InviteSnapshot, new: InviteSnapshot) -> InviteDiff:
    """
    Find the code with the strictly largest positive use delta.

    Codes present only in `old` (deleted invites) are ignored; codes new in
    `new` count from zero.

    Args:
        old: Baseline snapshot
        new: Fresh snapshot

    Returns:
        InviteDiff with the winning code, or code=None when no counter moved
        or when several codes tie for the largest delta
    """
    best_delta = 0
    best_codes: list[str] = []

    for code, uses in new.items():
        delta = uses - old.get(code, 0)
        if delta <= 0:
            continue
        if delta > best_delta:
            best_delta = delta
            best_codes = [code]
        elif delta == best_delta:
            best_codes.append(code)

    if not best_codes:
        return InviteDiff(code=None, delta=0)

    if len(best_codes) > 1:
        return InviteDiff(
            code=None, delta=best_delta, tied_codes=tuple(sorted(best_codes))
        )

    return InviteDiff(code=best_codes[0], delta=best_delta, tied_codes=(best_codes[0],))


class AttributionResolver:
    """
    Resolves joins to inviters.

    Each resolution runs its own fetch->replace cycle through the snapshot
    store, serialized per community, so two concurrent joins never diff
    against the same baseline.
    """

    def __init__(self, store: InviteSnapshotStore) -> None:
        """
        Initialize resolver.

        Args:
            store: Snapshot store shared with the periodic refresh
        """
        self.store = store

    async def resolve(
        self,
        community_id: int,
        joining_member_id: str,
        directory: InviteOwnerLookup,
    ) -> AttributionResult:
        """
        Attribute a join to the owner of the most likely used invite.

        Args:
            community_id: Guild ID
            joining_member_id: Discord ID of the new member
            directory: Invite code -> owner lookup

        Returns:
            AttributionResult; only ATTRIBUTED carries an inviter
        """
        invitee_id = str(joining_member_id)

        try:
            old, new = await self.store.exchange(community_id)
        except InviteFetchError as e:
            logger.warning(f"Join {invitee_id}: {e}")
            return AttributionResult(
                outcome=AttributionOutcome.FETCH_FAILED,
                community_id=community_id,
                invitee_id=invitee_id,
            )

        if old is None:
            logger.info(
                f"Join {invitee_id}: no baseline snapshot for community "
                f"{community_id}, cannot attribute (next join will work)"
            )
            return AttributionResult(
                outcome=AttributionOutcome.NO_BASELINE,
                community_id=community_id,
                invitee_id=invitee_id,
            )

        diff = pick_used_invite(old, new)

        if diff.ambiguous:
            logger.info(
                f"Join {invitee_id}: ambiguous, codes "
                f"{', '.join(diff.tied_codes)} tie at delta {diff.delta}"
            )
            return AttributionResult(
                outcome=AttributionOutcome.AMBIGUOUS,
                community_id=community_id,
                invitee_id=invitee_id,
                delta=diff.delta,
                candidates=diff.tied_codes,
            )

        if diff.code is None:
            logger.info(f"Join {invitee_id}: no invite counter moved")
            return AttributionResult(
                outcome=AttributionOutcome.NO_USABLE_DELTA,
                community_id=community_id,
                invitee_id=invitee_id,
            )

        inviter_id = await directory.owner_of(diff.code)
        if not inviter_id:
            logger.info(
                f"Join {invitee_id}: code {diff.code} has no owner "
                f"in the invite directory"
            )
            return AttributionResult(
                outcome=AttributionOutcome.UNKNOWN_OWNER,
                community_id=community_id,
                invitee_id=invitee_id,
                code=diff.code,
                delta=diff.delta,
                candidates=diff.tied_codes,
            )

        logger.info(
            f"Join {invitee_id}: attributed to {inviter_id} via {diff.code} "
            f"(delta {diff.delta})"
        )
        return AttributionResult(
            outcome=AttributionOutcome.ATTRIBUTED,
            community_id=community_id,
            invitee_id=invitee_id,
            code=diff.code,
            inviter_id=str(inviter_id),
            delta=diff.delta,
            candidates=diff.tied_codes,
        )
