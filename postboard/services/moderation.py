"""
Profanity filter for nicknames, posts and comments.

Text is canonicalized with normalize() (lowercase, alphanumerics only, common
digit-for-letter swaps undone) and then tested against a fixed list of root
words using three strategies:

1. containment: the normalized root appears in the normalized text
2. scattered: the root's letters appear in order anywhere in one line of the
   raw text ("s.e.x", "s e x y", but also unrelated prose)
3. repetition: each root letter may be elongated ("seeexxx")

The scattered strategy trades false positives for catching obfuscated
spellings. It has no proximity bound and no minimum word length, so short
roots will hit ordinary sentences; it can be switched off on its own with
``scattered=False`` (PROFANITY_SCATTERED_MATCH in config).
"""

from __future__ import annotations
import re
from typing import Iterable, Optional, Pattern, Tuple

from .errors import ProfanityDetected

BANNED_WORDS: Tuple[str, ...] = (
    "nigger",
    "sex",
    "ejaculation",
    "penis",
    "vagina",
    "scrotum",
    "testicles",
)

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_LINE_BREAK = re.compile("[\n\r\u2028\u2029]")
_LEET_TABLE = str.maketrans({
    "0": "o",
    "1": "i",
    "3": "e",
    "4": "a",
    "5": "s",
    "7": "t",
    "8": "b",
})


def normalize(text: str | None) -> str:
    """Lowercase, strip everything outside [a-z0-9], then undo digit swaps."""
    if not text:
        return ""
    return _NON_ALNUM.sub("", text.lower()).translate(_LEET_TABLE)


def _is_subsequence(needle: str, haystack: str) -> bool:
    """True if needle's characters occur in haystack in order (gaps allowed)."""
    it = iter(haystack)
    return all(ch in it for ch in needle)


class _Root:
    __slots__ = ("word", "normalized", "repeated")

    def __init__(self, word: str):
        self.word = word
        self.normalized = normalize(word)
        self.repeated: Pattern[str] = re.compile(
            "".join(f"{re.escape(ch)}+" for ch in self.normalized)
        )


class ProfanityMatcher:
    """
    Stateless matcher over a fixed word list.

    All per-word work (normalizing the root, compiling the repetition pattern)
    happens once here, so a check never builds patterns on the request path.
    Safe to share between threads.
    """

    def __init__(self, words: Iterable[str] = BANNED_WORDS, scattered: bool = True):
        self._roots = tuple(_Root(w) for w in words if normalize(w))
        self.scattered = scattered

    @property
    def words(self) -> Tuple[str, ...]:
        return tuple(r.word for r in self._roots)

    def first_match(self, text: str | None) -> Optional[str]:
        """Return the first root word the text hits, or None."""
        if not text:
            return None

        normalized = normalize(text)
        # Line-bounded, matching how a `.*` pattern treats line breaks.
        lines = _LINE_BREAK.split(text.lower()) if self.scattered else ()

        for root in self._roots:
            if root.normalized in normalized:
                return root.word
            if self.scattered and any(_is_subsequence(root.normalized, line) for line in lines):
                return root.word
            if root.repeated.search(normalized):
                return root.word
        return None

    def contains_profanity(self, text: str | None) -> bool:
        return self.first_match(text) is not None

    def check_text(self, text: str | None) -> None:
        """Raise ProfanityDetected if the text hits any root word."""
        word = self.first_match(text)
        if word is not None:
            raise ProfanityDetected(word)


_default_matcher = ProfanityMatcher()


def contains_profanity(text: str | None) -> bool:
    """Check text against the built-in word list with all strategies enabled."""
    return _default_matcher.contains_profanity(text)
