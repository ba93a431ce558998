"""
Bot cogs.

- affiliate_invites: Invite tracking, join attribution, personal invite button
- leaderboards: /mystats and the leaderboard info message
- backfill: One-off member import
"""
