"""Token estimation for context budgeting."""

import math
from typing import Callable

TokenEstimator = Callable[[str], int]


class CharTokenEstimator:
    """Estimates tokens from character count.

    Roughly four characters per token for English text, plus a fixed
    per-item overhead for the role or bullet framing around each entry.
    """

    def __init__(self, chars_per_token: float = 4.0, overhead: int = 4) -> None:
        if chars_per_token <= 0:
            raise ValueError("chars_per_token must be positive")
        if overhead < 0:
            raise ValueError("overhead must not be negative")
        self.chars_per_token = chars_per_token
        self.overhead = overhead

    def __call__(self, text: str) -> int:
        return math.ceil(len(text) / self.chars_per_token) + self.overhead
