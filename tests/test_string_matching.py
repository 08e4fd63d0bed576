# tests/test_string_matching.py

"""
Tests for edit-distance name matching.
"""

import pytest

from app.core.string_matching import _distance, fuzzy_match, levenshtein_distance


class TestLevenshteinDistance:

    @pytest.mark.parametrize("s", ["", "a", "Jane Doe", "cookie share"])
    def test_identity(self, s):
        assert levenshtein_distance(s, s) == 0

    def test_case_insensitive(self):
        assert levenshtein_distance("Jane Doe", "JANE DOE") == 0

    def test_classic_example(self):
        assert levenshtein_distance("kitten", "sitting") == 3

    def test_empty_string(self):
        assert levenshtein_distance("", "hello") == 5
        assert levenshtein_distance("hello", "") == 5

    def test_missing_counts_as_empty(self):
        assert levenshtein_distance(None, None) == 0
        assert levenshtein_distance(None, "abc") == 3

    def test_symmetric(self):
        assert levenshtein_distance("Jane Doe", "Jayne Do") == levenshtein_distance("Jayne Do", "Jane Doe")

    def test_repeated_pairs_are_cached(self):
        before = _distance.cache_info().hits

        first = levenshtein_distance("Harriet Quimby", "Harriet Quimbey")
        again = levenshtein_distance("HARRIET QUIMBY", "harriet quimbey")

        assert first == again == 1
        assert _distance.cache_info().hits == before + 1


class TestFuzzyMatch:

    def test_both_missing(self):
        assert fuzzy_match(None, None) is True

    def test_one_missing(self):
        assert fuzzy_match("hello", None) is False
        assert fuzzy_match(None, "hello") is False
        assert fuzzy_match("", "hello") is False

    def test_within_default_distance(self):
        assert fuzzy_match("hello", "hallo") is True

    def test_beyond_default_distance(self):
        assert fuzzy_match("hello", "hxyzw") is False

    def test_custom_distance(self):
        assert fuzzy_match("Jane Doe", "Jane Do", max_distance=0) is False
        assert fuzzy_match("Jane Doe", "Jane Do", max_distance=1) is True
