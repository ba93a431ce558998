"""
Leaderboard services package.

Contains modular services for monthly leaderboards:
- month_keys: Month keys and the launch carryover filter
- aggregation: Invite and affiliate rankings, member stats
- messages: Leaderboard and payout message content
- publisher: Live board and final results publishing
- rollover: Month rollover state machine
- earnings_notifications: Idempotent payout summaries
"""
