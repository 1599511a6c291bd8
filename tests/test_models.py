"""Tests for models.py — Span, HashResult and HashSummary."""
import pytest

from models import HashResult, HashSummary, Span


class TestSpan:
    def test_positive_offset_is_absolute(self):
        assert Span(100, 8).resolve(1000) == 100

    def test_negative_offset_counts_from_end(self):
        assert Span(-65536, 65536).resolve(200_000) == 200_000 - 65536

    def test_zero_offset(self):
        assert Span(0, 8).resolve(8) == 0

    @pytest.mark.parametrize("size", [0, -1])
    def test_non_positive_size_rejected(self, size):
        with pytest.raises(ValueError):
            Span(0, size)

    def test_is_immutable(self):
        span = Span(0, 8)
        with pytest.raises(AttributeError):
            span.offset = 4


class TestHashResult:
    def test_to_dict_contains_all_fields(self):
        d = HashResult(source="/v/a.mkv", hash="0000000000020000", size=131072).to_dict()
        assert d == {"source": "/v/a.mkv", "hash": "0000000000020000", "size": 131072}


class TestHashSummary:
    def test_defaults_are_zero(self):
        s = HashSummary()
        assert s.sources_given == 0
        assert s.files_hashed == 0
        assert s.files_errored == 0
        assert s.errors == []

    def test_files_seen_counts_both_outcomes(self):
        s = HashSummary(files_hashed=3, files_errored=2)
        assert s.files_seen == 5

    def test_errors_list_is_independent(self):
        """Each instance gets its own errors list (no shared mutable default)."""
        a = HashSummary()
        b = HashSummary()
        a.errors.append(("a.mkv", "oops"))
        assert b.errors == []
