"""
Member services package.

- backfill: Bulk member import from the guild listing
"""
