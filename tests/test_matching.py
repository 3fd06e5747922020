"""Normalizer and similarity scorer."""
import pytest

from app.portal.matching import contains_normalized, fingerprint, normalize_text, positional_mismatches, similarity


@pytest.mark.parametrize(
    "raw",
    ["  Crash   Barrier ", "W-Beam\tBarrier\n", "", "ALREADY normal", "a  b   c"],
)
def test_normalize_is_idempotent(raw):
    once = normalize_text(raw)
    assert normalize_text(once) == once


def test_normalize_trims_lowercases_and_collapses_whitespace():
    assert normalize_text("  Crash \t\n Barrier  ") == "crash barrier"


@pytest.mark.parametrize("value", [None, 42, ["x"], {"a": 1}])
def test_normalize_non_string_is_empty(value):
    assert normalize_text(value) == ""


@pytest.mark.parametrize("raw", ["Crash Barrier", "  YNM  Safety ", "W-Beam"])
def test_self_match_scores_one(raw):
    assert similarity(normalize_text(raw), raw) == 1.0


def test_empty_strings():
    assert similarity("", "") == 1.0
    assert similarity(None, "   ") == 1.0
    assert similarity("abc", "") < 1.0


def test_containment_scores_point_nine():
    assert similarity("W-Beam Barrier", "W-Beam") == 0.9
    assert similarity("W-Beam", "W-Beam Barrier") == 0.9


def test_near_match_floor_on_short_strings():
    # raw score would be 1 - 1/6
    assert positional_mismatches("ynm001", "ynm002") == 1
    assert similarity("YNM001", "YNM002") == pytest.approx(0.85)


def test_floor_does_not_apply_to_tiny_strings():
    assert similarity("ab", "ac") == pytest.approx(0.5)


def test_raw_score_wins_when_above_floor():
    # 38 characters, one mismatch
    score = similarity("Highway Safety Systems Private Limited", "Highway Safety Systems Private Limitad")
    assert score == pytest.approx(1 - 1 / 38)


def test_mid_band_score():
    # three mismatches over 22 characters
    score = similarity("Delta Road Safety Corp", "Delta Road Safety Cabs")
    assert score == pytest.approx(1 - 3 / 22)
    assert 0.85 < score < 0.95


def test_insertion_near_start_shifts_every_position():
    assert similarity("crash barier", "crash barrier") < 0.85


def test_contains_normalized_is_raw_substring():
    assert contains_normalized("  W-Beam  Crash Barrier", "w-beam crash")
    assert not contains_normalized("W-Beam", "W Beam")
    assert not contains_normalized("W-Beam", "")


def test_fingerprint_joins_normalized_fields():
    assert fingerprint(" Ravi ", "Inspect  Site A") == "ravi|inspect site a"
