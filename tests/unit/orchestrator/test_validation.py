"""
Unit tests for query validation.
"""

import pytest

from pitwall.errors import ValidationError
from pitwall.orchestrator.validation import QueryValidator

pytestmark = pytest.mark.unit


class TestQueryValidator:
    @pytest.mark.parametrize("query", [None, "", "   ", "\n\t"])
    def test_empty_rejected(self, query):
        with pytest.raises(ValidationError, match="non-empty"):
            QueryValidator().validate(query)

    def test_too_long_rejected(self):
        with pytest.raises(ValidationError, match="maximum 10 characters"):
            QueryValidator(max_length=10).validate("Who won the 2021 title?")

    def test_length_measured_after_trimming(self):
        assert QueryValidator(max_length=20).validate("   Who won in 2021?   ") == []

    def test_clean_query_has_no_warnings(self):
        assert QueryValidator().validate("Who won the Monaco Grand Prix race?") == []

    def test_short_query_is_vague_without_history(self):
        assert QueryValidator().validate("Monaco?") == ["Query is too vague"]

    def test_short_follow_up_is_fine_with_history(self):
        assert QueryValidator().validate("last year", has_history=True) == []

    def test_vague_pattern(self):
        assert "Query is too vague" in QueryValidator().validate("what about", has_history=True)

    def test_pronoun_without_history(self):
        warnings = QueryValidator().validate("How did he do at Monza?")

        assert warnings == ["Query contains ambiguous pronouns without context"]

    def test_pronoun_with_history(self):
        assert QueryValidator().validate("How did he do at Monza?", has_history=True) == []
