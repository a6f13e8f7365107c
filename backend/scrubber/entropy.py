from __future__ import annotations

import math
import re
from collections import Counter
from dataclasses import dataclass
from typing import Iterator

DEFAULT_THRESHOLD = 4.5
DEFAULT_MIN_LENGTH = 16
DEFAULT_MAX_LENGTH = 256

# Characters that commonly appear in keys, tokens and base64 blobs.
_TOKEN_RE = re.compile(r"[A-Za-z0-9_\-+/=.]+")


@dataclass(frozen=True)
class EntropyToken:
    """A candidate token whose randomness met the threshold."""

    value: str
    entropy: float
    position: int


def shannon_entropy(value: str) -> float:
    """Return the base-2 Shannon entropy of *value* over its characters."""
    if not value:
        return 0.0
    length = len(value)
    entropy = 0.0
    for count in Counter(value).values():
        p = count / length
        entropy -= p * math.log2(p)
    # A single repeated character yields -0.0
    return abs(entropy)


def is_high_entropy(token: str, threshold: float = DEFAULT_THRESHOLD) -> bool:
    """True when *token* is long enough and random enough to be a secret.

    Tokens shorter than 16 characters never qualify, whatever their score.
    """
    if not token or len(token) < DEFAULT_MIN_LENGTH:
        return False
    return shannon_entropy(token) >= threshold


def extract_high_entropy_tokens(
    text: str,
    *,
    threshold: float = DEFAULT_THRESHOLD,
    min_length: int = DEFAULT_MIN_LENGTH,
    max_length: int = DEFAULT_MAX_LENGTH,
) -> Iterator[EntropyToken]:
    """Yield every token in *text* that meets the length bounds and threshold.

    The text is split on anything outside ``[A-Za-z0-9-_+/=.]``.  Calling the
    function again restarts the scan; *text* is never modified.
    """
    if not text:
        return
    for match in _TOKEN_RE.finditer(text):
        token = match.group()
        if len(token) < min_length or len(token) > max_length:
            continue
        entropy = shannon_entropy(token)
        if entropy >= threshold:
            yield EntropyToken(value=token, entropy=entropy, position=match.start())
