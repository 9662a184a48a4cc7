import string
import math
from hypothesis import given, strategies as st, settings
from scraper.rolescout.filters import parse_experience, matches, filter_records, location_matches
from scraper.rolescout.models import JobRecord


def rec(experience='2-5 Yrs', location='Pune'):
    return JobRecord(title='Engineer', company='Acme', experience=experience, location=location, link='https://x/1')


def test_parse_range():
    assert parse_experience('2-5 Yrs') == (2, 5)
    assert parse_experience(' 0 - 1 yrs ') == (0, 1)


def test_parse_single_year():
    assert parse_experience('3 years') == (3, 3)
    assert parse_experience('5 Yrs') == (5, 5)


def test_parse_unparseable_is_unbounded():
    for text in ('Fresher', 'No experience', '', None, 'years of experience', 'x-y'):
        r = parse_experience(text)
        assert r.minimum == 0 and r.maximum == math.inf


def test_parse_open_ended_range():
    r = parse_experience('5- yrs')
    assert r.minimum == 5 and r.maximum == math.inf


def test_reversed_range_is_normalized():
    assert parse_experience('7-3 Yrs') == (3, 7)


def test_location_case_insensitive_substring():
    assert matches(rec(location='Bengaluru East'), 2, 'bengaluru')
    assert matches(rec(location='Hybrid - Pune, Mumbai'), 3, ' PUNE ')
    assert not matches(rec(location='Chennai'), 3, 'pune')


def test_empty_location_only_matches_empty_target():
    assert not location_matches('', 'pune')
    assert location_matches('', '')


def test_fresher_never_excluded_on_experience():
    assert matches(rec(experience='Fresher'), 12, 'pune')


def test_filter_keeps_order():
    records = [rec('1-3 Yrs'), rec('4-6 Yrs'), rec('2-8 Yrs'), rec('3 years')]
    kept = filter_records(records, 3, 'pune')
    assert [r.experience for r in kept] == ['1-3 Yrs', '2-8 Yrs', '3 years']


bounds = st.integers(min_value=0, max_value=40)


@given(bounds, bounds, bounds)
@settings(max_examples=80, deadline=None)
def test_range_property(a, b, target):
    low, high = min(a, b), max(a, b)
    text = f"{low}-{high} Yrs"
    assert parse_experience(text) == (low, high)
    assert matches(rec(experience=text), target, 'pune') == (low <= target <= high)


@given(bounds)
@settings(max_examples=40, deadline=None)
def test_single_year_property(n):
    assert parse_experience(f"{n} years") == (n, n)


@given(st.text(alphabet=string.ascii_letters + " ", max_size=20), bounds)
@settings(max_examples=60, deadline=None)
def test_unparseable_property(text, target):
    # no digits: never excluded on experience grounds, year token or not
    assert matches(rec(experience=text), target, 'pune')
