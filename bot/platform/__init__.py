"""
Discord platform adapters.

Implement the platform-neutral interfaces from app.services.platform on top
of discord.py.
"""
