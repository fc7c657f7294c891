"""
Sentence normalizer/tokenizer for the word-level Markov chain.

Turns raw chat text into word and punctuation tokens:
- strips links, tags and inline code (the pattern is replaceable)
- collapses runs like "?!" or "..." into a single dot
- splits on whitespace and around punctuation marks, keeping the marks

Also reconstructs text from tokens with the matching spacing rules.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Optional, Pattern, Union

# Links, tag spans and inline code carry nothing a chain can learn from.
DEFAULT_MEANINGLESS_PATTERN = r"(https?://(\S+)|<.*>|```.+```|`.+`)"

# Marks that end a sentence.
ENDING_PUNCTUATION = frozenset(".!?")
# Marks that are not preceded by a space.
LEFT_ATTACHING_PUNCTUATION = frozenset(".,:;!?)]")
# Marks that are not followed by a space.
RIGHT_ATTACHING_PUNCTUATION = frozenset("([")

_DOT_VARIATIONS_RE = re.compile(r"[!?.]{2,}")
_SPLIT_RE = re.compile(r"\s+|(?=[.,?!:;/()\[\]])|(?<=[.,?!:;/()\[\]])")


def _single_char_in(token: str, marks: frozenset) -> bool:
    return len(token) == 1 and token in marks


def is_sentence_end(token: str) -> bool:
    """True for a single ending punctuation mark."""
    return _single_char_in(token, ENDING_PUNCTUATION)


def attaches_left(token: str) -> bool:
    """True for a single mark that is written right after the previous token."""
    return _single_char_in(token, LEFT_ATTACHING_PUNCTUATION)


def attaches_right(token: str) -> bool:
    """True for a single mark that is written right before the next token."""
    return _single_char_in(token, RIGHT_ATTACHING_PUNCTUATION)


class Tokenizer:
    """
    Splits sentences into chain tokens.

    Usage:
        tokenizer = Tokenizer()
        tokenizer.tokenize("Hello, world!")  # ['Hello', ',', 'world', '!']
        tokenizer.join(['Hello', ',', 'world', '!'])  # 'Hello, world!'
    """

    def __init__(self, meaningless_pattern: Optional[Union[str, Pattern[str]]] = None):
        """
        Args:
            meaningless_pattern: Regex of substrings removed before tokenizing.
                Defaults to links, angle-bracket tags and inline code.
        """
        pattern = meaningless_pattern or DEFAULT_MEANINGLESS_PATTERN
        self.meaningless_re: Pattern[str] = (
            re.compile(pattern) if isinstance(pattern, str) else pattern
        )

    def normalize(self, text: str) -> str:
        """Strip meaningless spans, collapse punctuation runs and trim."""
        text = self.meaningless_re.sub("", text)
        # multi-char punctuation marks can't be chain tokens
        text = _DOT_VARIATIONS_RE.sub(".", text)
        return text.strip()

    def tokenize(self, text: str) -> List[str]:
        """
        Tokenize a sentence.

        Returns:
            Non-blank tokens in order; empty if nothing meaningful remains.
        """
        normalized = self.normalize(text)
        if not normalized:
            return []
        return [token for token in _SPLIT_RE.split(normalized) if token and not token.isspace()]

    @staticmethod
    def join(tokens: Iterable[str]) -> str:
        """Rebuild a sentence, attaching punctuation to its neighbours."""
        parts: List[str] = []
        previous: Optional[str] = None
        for token in tokens:
            if previous is not None and not attaches_left(token) and not attaches_right(previous):
                parts.append(" ")
            parts.append(token)
            previous = token
        return "".join(parts)
