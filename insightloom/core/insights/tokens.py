"""Token estimation.

Two flavours:
- estimate_tokens(): cheap character-ratio estimate used for chunk budgeting
- TokenCounter: exact count via tiktoken, optional for strategy selection
"""

import tiktoken

DEFAULT_AVG_CHARS_PER_TOKEN = 3.6


def estimate_tokens(text: str, avg_chars_per_token: float = DEFAULT_AVG_CHARS_PER_TOKEN) -> float:
    """Estimate the token count of text from its character length."""
    return len(text) / avg_chars_per_token


class TokenCounter:
    """Count tokens using tiktoken encoding.

    Optional for AdaptiveInsightStrategy: an exact count of the joined
    summaries avoids sending near-limit input single-pass when the
    character estimate runs low (code, non-English text).
    """

    def __init__(self, encoding_name: str = "cl100k_base"):
        self.encoding_name = encoding_name
        self._encoder = tiktoken.get_encoding(encoding_name)

    def count(self, text: str) -> int:
        """Return the number of tokens in text."""
        return len(self._encoder.encode(text))
