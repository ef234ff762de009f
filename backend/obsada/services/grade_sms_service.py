"""
backend/obsada/services/grade_sms_service.py

Purpose:
    Parsing and validation of inbound grade SMS of the form
    ``<matchKey>#<grade>/<maxGrade>``.

    Gates run in a fixed order and each one maps to exactly one reply text:

    1. ``#`` split must give two segments          -> INVALID_FORMAT
    2. match key segment must be non-empty          -> INVALID_MATCH_KEY
    3. ``/`` split of the grade part must give two  -> INVALID_GRADE_FORMAT
    4. grade token must be a finite decimal         -> INVALID_GRADE
    5. key resolves, match ungraded, match ended    -> see check_match_gradeable

    ``maxGrade`` is carried through but not checked against the grade.

Dependencies:
    - obsada.services.validators
"""

import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from obsada.services.validators import MATCH_DURATION, is_within_entry_window

INVALID_FORMAT = "Invalid sms format."
INVALID_MATCH_KEY = "Invalid match key."
INVALID_GRADE_FORMAT = "Invalid sms grade format."
INVALID_GRADE = "Invalid grade."
GRADE_ALREADY_ENTERED = "Grade has already been entered."
GRADE_BEFORE_MATCH_END = "Cannot enter a grade before match end."
GRADE_ENTERED = "Grade for match {key} has been entered."

KEY_SEPARATOR = "#"
GRADE_SEPARATOR = "/"

# Plain decimal notation only: no digit separators, no empty token.
_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


class GradeSmsError(Exception):
    """Rejected inbound SMS. ``reply`` is the text sent back to the sender."""

    def __init__(self, reply: str):
        super().__init__(reply)
        self.reply = reply


@dataclass(frozen=True)
class ParsedGradeSms:
    match_key: str
    grade: float
    max_grade: str


def _parse_number(token: str) -> float:
    token = token.strip()
    if not _NUMBER.fullmatch(token):
        raise ValueError(token)
    value = float(token)
    if not math.isfinite(value):
        raise ValueError(token)
    return value


def parse_grade_sms(text: str) -> ParsedGradeSms:
    """Run the syntax gates. Raises GradeSmsError with the reply text."""
    segments = text.strip().split(KEY_SEPARATOR)
    if len(segments) != 2:
        raise GradeSmsError(INVALID_FORMAT)

    match_key, grade_part = segments[0].strip(), segments[1]
    if not match_key:
        raise GradeSmsError(INVALID_MATCH_KEY)

    grade_elems = grade_part.split(GRADE_SEPARATOR)
    if len(grade_elems) != 2:
        raise GradeSmsError(INVALID_GRADE_FORMAT)

    try:
        grade = _parse_number(grade_elems[0])
    except ValueError:
        raise GradeSmsError(INVALID_GRADE) from None

    return ParsedGradeSms(match_key=match_key, grade=grade, max_grade=grade_elems[1].strip())


def check_match_gradeable(match: Optional[dict], now: Optional[datetime] = None) -> Optional[str]:
    """Business gates after key lookup. Returns the rejection reply, or None."""
    if not match:
        return INVALID_MATCH_KEY
    if match.get("referee_grade") is not None:
        return GRADE_ALREADY_ENTERED
    if not is_within_entry_window(match["match_date"], MATCH_DURATION, now):
        return GRADE_BEFORE_MATCH_END
    return None
