"""
Query Validator

Hard errors reject the query before it enters the pipeline; warnings are
recorded on the state and never block a turn.
"""

import re

from pitwall.errors import ValidationError

VAGUE_PATTERNS = (
    re.compile(r"^(what|who|how|when|where|why)\s*(about|is)?\??$", re.IGNORECASE),
    re.compile(r"^(tell me|show me|info|information)\??$", re.IGNORECASE),
    re.compile(r"^(good|bad|best|worst)\??$", re.IGNORECASE),
)
PRONOUN_PATTERN = re.compile(r"\b(he|she|they|it|his|her|their)\b", re.IGNORECASE)


class QueryValidator:
    def __init__(self, max_length: int = 2000):
        self.max_length = max_length

    def validate(self, query: str | None, has_history: bool = False) -> list[str]:
        """Return soft warnings for ``query``.

        Raises:
            ValidationError: if the query is empty or too long.
        """
        if query is None or not query.strip():
            raise ValidationError("Query must be a non-empty string")

        trimmed = query.strip()
        if len(trimmed) > self.max_length:
            raise ValidationError(f"Query too long (maximum {self.max_length} characters)")

        warnings = []
        # Short follow-ups such as "last year" are fine mid-conversation.
        too_short = len(trimmed.split()) < 3 and not has_history
        if too_short or any(pattern.match(trimmed) for pattern in VAGUE_PATTERNS):
            warnings.append("Query is too vague")
        if PRONOUN_PATTERN.search(trimmed) and not has_history:
            warnings.append("Query contains ambiguous pronouns without context")
        return warnings
