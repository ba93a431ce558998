"""
Exception handling utilities.

Defines domain exceptions for the affiliate program.
"""


class AffiliateError(Exception):
    """Base class for affiliate program errors."""
    pass


class InviteFetchError(AffiliateError):
    """Raised when the live invite list could not be fetched in time."""

    def __init__(self, community_id: int, reason: str) -> None:
        self.community_id = community_id
        self.reason = reason
        super().__init__(
            f"Invite fetch failed for community {community_id}: {reason}"
        )


class PersonalInviteError(AffiliateError):
    """Raised when a personal invite link cannot be issued."""
    pass
