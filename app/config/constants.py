"""
Application constants.

Centralized constants for the application.
"""

# ========================================================================
# MONTH KEYS & LEADERBOARDS
# ========================================================================

MONTH_KEY_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"
DEFAULT_MONTH_KEY_TIMEZONE = "Europe/Amsterdam"

DEFAULT_LEADERBOARD_TOP_N = 10
LEADERBOARD_TOP_N_MIN = 3
LEADERBOARD_TOP_N_MAX = 25  # embed field limit

LEADERBOARD_TITLE_PREFIX = "🏆 LEADERBOARD —"
FINAL_RESULTS_TITLE_PREFIX = "🏁 FINAL RESULTS —"
LEADERBOARD_NAME_WIDTH = 18
LEADERBOARD_MESSAGE_SEARCH_LIMIT = 50

# ========================================================================
# AFFILIATE PROGRAM
# ========================================================================

AFFILIATE_PROGRAM_TITLE = "🤝 Affiliate Program"
AFFILIATE_INFO_TITLE = "🤝 Affiliate Program — What It Is & How It Works"
LEADERBOARD_INFO_TITLE = "ℹ️ Leaderboards & Affiliate Rewards — How It Works"
AFFILIATE_BUTTON_CUSTOM_ID = "aff_get_invite"
PROGRAM_MESSAGE_SEARCH_LIMIT = 25

# Top-3 monthly inviter prizes (EUR), shown on the info message
TOP_INVITER_PRIZES = (100, 50, 25)

BRAND_COLOR = 0xFFD300
EARNINGS_COLOR = 0x00C389

# ========================================================================
# MESSAGING
# ========================================================================

# Delay between payout DMs to stay under the platform rate limit
DM_SEND_DELAY = 0.5
