"""
Services.

Business logic layer:
- invites: snapshot store, attribution, invites log, personal invites
- leaderboard: month keys, rankings, publishing, rollover, payout summaries
- members: member table backfill
"""
