import random
import re
from collections import Counter
from itertools import islice

import pytest

import callsign
import config
from callsign import (FORMAT_RANGE, FORMATS, callsign_pattern, format_callsign, generate_callsigns,
                      matches_any_format, random_callsign, select_formats, validate_formats)
from errors import InvalidFormat


def bucket_of(call):
    """Which weight bucket of config.CALLSIGN_FORMATS a call sign came from."""
    if '/' in call or re.fullmatch(r'[A-Z][0-9]{2}[A-Z]|[A-Z]{2}[0-9]{2}[A-Z]{3}', call):
        return 5
    if call[0].isdigit():
        return 10
    return 85


def test_format_table_is_cumulative():
    assert [total for total, _ in FORMATS] == [5, 15, 100]
    assert FORMAT_RANGE == 101


def test_format_callsign():
    rng = random.Random(1)
    call = format_callsign('NL/LLNLL', rng)
    assert re.fullmatch(r'[0-9][A-Z]/[A-Z]{2}[0-9][A-Z]{2}', call)
    assert format_callsign('', rng) == ''
    assert format_callsign('///', rng) == '///'


def test_format_callsign_rejects_unknown_char():
    with pytest.raises(InvalidFormat):
        format_callsign('LNX')


def test_select_formats_boundaries():
    assert select_formats(0.0) is FORMATS[0][1]
    assert select_formats(5.0) is FORMATS[0][1]
    assert select_formats(5.0001) is FORMATS[1][1]
    assert select_formats(15.0) is FORMATS[1][1]
    assert select_formats(100.0) is FORMATS[2][1]
    # The top of the sampling range falls in the heaviest bucket
    assert select_formats(100.999) is FORMATS[2][1]


def test_random_callsign_matches_a_format():
    rng = random.Random(42)
    for _ in range(2000):
        call = random_callsign(rng)
        assert matches_any_format(call), call


def test_bucket_weights_distribution():
    rng = random.Random(1234)
    n = 10000
    counts = Counter(bucket_of(random_callsign(rng)) for _ in range(n))
    assert counts[5] / n == pytest.approx(5 / FORMAT_RANGE, abs=0.01)
    assert counts[10] / n == pytest.approx(10 / FORMAT_RANGE, abs=0.01)
    assert counts[85] / n == pytest.approx(86 / FORMAT_RANGE, abs=0.015)


def test_formats_uniform_within_bucket(monkeypatch):
    # Always draw from the first bucket
    rng = random.Random(7)
    monkeypatch.setattr(rng, 'random', lambda: 0.0)
    seen = Counter()
    for _ in range(3000):
        call = random_callsign(rng)
        for fmt in config.CALLSIGN_FORMATS[0][1]:
            if callsign_pattern(fmt).fullmatch(call):
                seen[fmt] += 1
                break
    assert set(seen) == set(config.CALLSIGN_FORMATS[0][1])


def test_letters_and_digits_are_uniform():
    rng = random.Random(99)
    letters = Counter()
    for _ in range(2000):
        letters.update(format_callsign('LLLLLLLLLL', rng))
    assert set(letters) == set(config.CALLSIGN_LETTERS)
    expected = 20000 / 26
    assert all(abs(count - expected) < expected * 0.25 for count in letters.values())


def test_generate_callsigns_is_endless():
    calls = list(islice(generate_callsigns(random.Random(5)), 1000))
    assert len(calls) == 1000
    assert all(matches_any_format(call) for call in calls)
    # Draws are independent, not a fixed cycle
    assert len(set(calls)) > 900


def test_generate_callsigns_restartable():
    first = list(islice(generate_callsigns(random.Random(3)), 20))
    second = list(islice(generate_callsigns(random.Random(3)), 20))
    assert first == second


def test_default_ambient_random():
    call = random_callsign()
    assert matches_any_format(call)
    assert matches_any_format(next(generate_callsigns()))


@pytest.mark.parametrize("buckets", [
    (),
    ((10, ('LNL',)), (5, ('LNL',))),
    ((0, ('LNL',)), (5, ('LNL',))),
    ((5, ()),),
    ((5, ('LNL', 'L-N')),),
])
def test_validate_formats_rejects(buckets):
    with pytest.raises(InvalidFormat):
        validate_formats(buckets)


def test_configured_table_is_valid():
    validate_formats(config.CALLSIGN_FORMATS)
    assert callsign.FORMATS[-1][0] == sum(weight for weight, _ in config.CALLSIGN_FORMATS)


def test_callsign_pattern():
    pattern = callsign_pattern('LNLL')
    assert pattern.fullmatch('K7AB')
    assert not pattern.fullmatch('K7A')
    assert not pattern.fullmatch('77AB')
    with pytest.raises(InvalidFormat):
        callsign_pattern('LQ')
