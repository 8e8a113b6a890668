"""
Identifier Generation Module

PNR generation as a pure function of a timestamp and a random source, so
callers can inject a fixed clock and a seeded generator.
"""

from datetime import datetime
import random
import re


PNR_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
PNR_PATTERN = re.compile(r"[0-9]{17}")


def generate_pnr(now: datetime, rng: random.Random,
                 random_min: int = 100, random_max: int = 999) -> str:
    """
    Generate a PNR: 14-digit timestamp (yyyyMMddHHmmss) + 3-digit random suffix.

    Uniqueness is not checked. Two reservations in the same second share a
    1-in-900 chance of colliding.

    Args:
        now: Timestamp to encode
        rng: Random source
        random_min: Lowest suffix (inclusive)
        random_max: Highest suffix (inclusive)

    Returns:
        17-digit PNR string
    """
    if random_min < 100 or random_max > 999 or random_min > random_max:
        raise ValueError("PNR suffix bounds must lie within 100-999")
    return now.strftime(PNR_TIMESTAMP_FORMAT) + str(rng.randint(random_min, random_max))


def is_valid_pnr(value: str) -> bool:
    """Check the 17-digit PNR shape"""
    return bool(PNR_PATTERN.fullmatch(value or ""))
