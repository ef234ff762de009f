"""Human-readable match keys used to route inbound grade SMS.

Layout: ``DDMMYY`` (UTC calendar fields) + 2-digit league ordinal +
2-digit home team ordinal, e.g. ``1506240102``.
"""

from datetime import datetime, timezone

MATCH_KEY_LENGTH = 10
_MAX_ORDINAL = 99


def _ordinal(idx: int, label: str) -> str:
    ordinal = idx + 1
    if idx < 0 or ordinal > _MAX_ORDINAL:
        raise ValueError(f"{label} index {idx} does not fit a two-digit match key.")
    return f"{ordinal:02d}"


def get_user_readable_key(match_date: datetime, league_idx: int, home_team_idx: int) -> str:
    """Build the match key from kickoff and zero-based league/home team indices."""
    if match_date.tzinfo is not None:
        match_date = match_date.astimezone(timezone.utc)
    return (
        f"{match_date.day:02d}"
        f"{match_date.month:02d}"
        f"{match_date.year % 100:02d}"
        f"{_ordinal(league_idx, 'League')}"
        f"{_ordinal(home_team_idx, 'Home team')}"
    )
