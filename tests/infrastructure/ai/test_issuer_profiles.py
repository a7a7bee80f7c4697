"""Tests for the issuer prefix table."""

import json

import pytest

from cardbox.infrastructure.ai.issuer_profiles import (
    DEFAULT_ISSUER_PATTERNS,
    IssuerPattern,
    IssuerProfileError,
    load_issuer_patterns,
    matching_patterns,
    parse_issuer_patterns,
)


class TestIssuerPattern:
    def test_matches_prefix_and_length(self):
        pattern = IssuerPattern("in-store-20", ("20",), 13, 10)
        assert pattern.matches("2012345678905")
        assert not pattern.matches("201234567890")
        assert not pattern.matches("3012345678905")

    def test_from_dict_accepts_single_prefix_string(self):
        pattern = IssuerPattern.from_dict(
            {"name": "house", "prefixes": "99", "length": 10, "bonus": 5}
        )
        assert pattern.prefixes == ("99",)

    def test_round_trip_through_dict(self):
        pattern = DEFAULT_ISSUER_PATTERNS[0]
        assert IssuerPattern.from_dict(pattern.to_dict()) == pattern

    @pytest.mark.parametrize(
        "data",
        [
            {"prefixes": ["3"], "length": 13, "bonus": 1},
            {"name": "x", "prefixes": ["3A"], "length": 13, "bonus": 1},
            {"name": "x", "prefixes": [], "length": 13, "bonus": 1},
            {"name": "x", "prefixes": ["3"], "length": 0, "bonus": 1},
            {"name": "x", "prefixes": ["3"], "length": "long", "bonus": 1},
        ],
    )
    def test_invalid_entries_are_rejected(self, data):
        with pytest.raises(IssuerProfileError):
            IssuerPattern.from_dict(data)


class TestDefaultTable:
    def test_french_ean13_matches_both_generic_and_country_entries(self):
        names = [p.name for p in matching_patterns("3245678901234", DEFAULT_ISSUER_PATTERNS)]
        assert names == ["ean13", "ean13-france"]

    def test_leading_zero_has_no_bonus(self):
        assert matching_patterns("0245678901234", DEFAULT_ISSUER_PATTERNS) == []


class TestLoading:
    def test_load_from_json_file(self, tmp_path):
        path = tmp_path / "issuers.json"
        path.write_text(
            json.dumps([{"name": "house", "prefixes": ["99"], "length": 10, "bonus": 50}]),
            encoding="utf-8",
        )
        patterns = load_issuer_patterns(path)
        assert patterns == (IssuerPattern("house", ("99",), 10, 50),)

    def test_missing_file(self, tmp_path):
        with pytest.raises(IssuerProfileError):
            load_issuer_patterns(tmp_path / "missing.json")

    def test_table_must_be_a_list(self):
        with pytest.raises(IssuerProfileError):
            parse_issuer_patterns({"name": "house"})
