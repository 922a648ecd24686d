"""
Amateur radio call sign generator.
A format bucket is drawn by weight, then a format uniformly from the bucket,
then every L/N in the format is replaced by a random letter/digit.
"""

import logging
import random
import re
from typing import Iterator, Sequence, Tuple

import config
from errors import InvalidFormat

logger = logging.getLogger(__name__)

FORMAT_CHARS = {
    'L': config.CALLSIGN_LETTERS,
    'N': config.CALLSIGN_DIGITS,
}
SEPARATOR = '/'

Buckets = Sequence[Tuple[int, Sequence[str]]]


def validate_formats(buckets: Buckets) -> None:
    """
    Check a format table: positive weights sorted ascending, non-empty
    buckets, and only L, N and '/' in formats.
    """
    if not buckets:
        raise InvalidFormat("Call sign format table is empty")

    previous = 0
    for weight, formats in buckets:
        if weight <= 0:
            raise InvalidFormat(f"Bucket weight must be positive, got {weight}")
        if weight < previous:
            raise InvalidFormat(f"Buckets must be sorted ascending by weight: {weight} follows {previous}")
        if not formats:
            raise InvalidFormat(f"Bucket with weight {weight} has no formats")
        for fmt in formats:
            for ch in fmt:
                if ch not in FORMAT_CHARS and ch != SEPARATOR:
                    raise InvalidFormat(f"Unknown call sign format char: {ch!r} in {fmt!r}")
        previous = weight


def cumulative_weights(buckets: Buckets) -> Tuple[Tuple[int, Sequence[str]], ...]:
    """(running weight total, formats) for each bucket, in table order."""
    total = 0
    result = []
    for weight, formats in buckets:
        total += weight
        result.append((total, formats))
    return tuple(result)


validate_formats(config.CALLSIGN_FORMATS)
FORMATS = cumulative_weights(config.CALLSIGN_FORMATS)
# One past the total weight; draws above the total land in the last bucket.
FORMAT_RANGE = FORMATS[-1][0] + 1


def format_callsign(fmt: str, rng: random.Random = random) -> str:
    """
    Render one format string, e.g. 'LNLL' -> 'K7AB'.
    Raises InvalidFormat for any character other than L, N or '/'.
    """
    result = []
    for ch in fmt:
        if ch in FORMAT_CHARS:
            result.append(rng.choice(FORMAT_CHARS[ch]))
        elif ch == SEPARATOR:
            result.append(ch)
        else:
            raise InvalidFormat(f"Unknown call sign format char: {ch!r}")

    call = "".join(result)
    logger.debug("Formatted call sign %s", {'format': fmt, 'result': call})
    return call


def select_formats(value: float, formats=FORMATS) -> Sequence[str]:
    """First bucket whose cumulative weight is >= value; values past the end fall in the last bucket."""
    for total, bucket in formats:
        if value <= total:
            return bucket
    return formats[-1][1]


def random_callsign(rng: random.Random = random) -> str:
    """Generate a random ham call sign from config.CALLSIGN_FORMATS."""
    value = rng.random() * FORMAT_RANGE
    bucket = select_formats(value)
    fmt = rng.choice(bucket)

    logger.debug("Generating call sign %s", {'next': value, 'format': fmt})
    return format_callsign(fmt, rng)


def generate_callsigns(rng: random.Random = random) -> Iterator[str]:
    """Endless stream of independent call signs."""
    while True:
        yield random_callsign(rng)


def callsign_pattern(fmt: str) -> 're.Pattern':
    """Regex that matches exactly the call signs `fmt` can produce."""
    parts = []
    for ch in fmt:
        if ch == 'L':
            parts.append('[A-Z]')
        elif ch == 'N':
            parts.append('[0-9]')
        elif ch == SEPARATOR:
            parts.append(re.escape(ch))
        else:
            raise InvalidFormat(f"Unknown call sign format char: {ch!r}")
    return re.compile("".join(parts))


def matches_any_format(call: str, buckets: Buckets = config.CALLSIGN_FORMATS) -> bool:
    return any(callsign_pattern(fmt).fullmatch(call) for _, formats in buckets for fmt in formats)
