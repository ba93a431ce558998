"""
Formatters utility.

Utility functions for formatting leaderboard data in the app layer.
"""

from decimal import Decimal

from app.config.constants import LEADERBOARD_NAME_WIDTH


def fallback_display_name(discord_id: str) -> str:
    """
    Display name for members without a stored username.

    Args:
        discord_id: Discord user ID

    Returns:
        "User 1234" built from the last four digits
    """
    discord_id = str(discord_id or "").strip()
    if not discord_id:
        return "Unknown"
    return f"User {discord_id[-4:]}"


def clamp_name(name: str | None, max_len: int = LEADERBOARD_NAME_WIDTH) -> str:
    """Shorten a name to fit a table column, marking the cut with an ellipsis."""
    s = str(name or "")
    return s[: max_len - 1] + "…" if len(s) > max_len else s


def format_eur(amount: Decimal | int) -> str:
    """
    Format EUR amount without trailing zeros.

    Examples:
        Decimal("15") -> "€15"
        Decimal("7.50") -> "€7.50"
    """
    amount = Decimal(amount)
    if amount == amount.to_integral_value():
        return f"€{int(amount)}"
    return f"€{amount.quantize(Decimal('0.01'))}"


def format_table(
    headers: tuple[str, str],
    rows: list[tuple[str, str]],
    col1_width: int = LEADERBOARD_NAME_WIDTH,
) -> str:
    """
    Render a two-column monospace table inside a code block.

    Args:
        headers: Column headers
        rows: (name, value) pairs
        col1_width: Width of the name column

    Returns:
        Table wrapped in triple backticks
    """
    h1 = str(headers[0]).ljust(col1_width)
    h2 = str(headers[1])
    sep = "─" * (col1_width + len(h2))

    body = [
        clamp_name(name, col1_width).ljust(col1_width) + str(value)
        for name, value in rows
    ]

    return "```" + "\n".join([h1 + h2, sep, *body]) + "```"
