"""
Bot startup and teardown, one concern per module:
- logging: loguru sinks
- services: long-lived affiliate services (AffiliateServices)
- cogs: cog registration
- shutdown: releases scheduler, Redis and database resources
"""
