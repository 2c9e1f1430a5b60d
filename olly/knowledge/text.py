"""
Text normalization shared by every matcher (pre-router, heuristics,
renderer detectors, lexical scoring).
"""
import re
import unicodedata
from typing import Iterable, List, Optional, Set

_NON_WORD = re.compile(r"[\W_]+", flags=re.UNICODE)


def normalize(text: Optional[str]) -> str:
    """Lowercase and collapse everything that is not a letter or digit into single spaces."""
    if not text:
        return ""
    text = unicodedata.normalize("NFC", str(text)).lower()
    return _NON_WORD.sub(" ", text).strip()


def tokenize(text: Optional[str]) -> List[str]:
    return [t for t in normalize(text).split(" ") if t]


def token_set(text: Optional[str]) -> Set[str]:
    return set(tokenize(text))


def contains_phrase(normalized_text: str, phrase: str) -> bool:
    """True when `phrase` occurs in `normalized_text` on token boundaries."""
    phrase = normalize(phrase)
    if not phrase or not normalized_text:
        return False
    return f" {phrase} " in f" {normalized_text} "


def starts_any_word(normalized_text: str, keywords: Iterable[str]) -> Optional[str]:
    """
    Return the first keyword that begins a word of `normalized_text`.
    Matches inflected forms ("parkir" → "parkiralište") without
    matching inside words ("king" does not hit "parking").
    """
    padded = f" {normalized_text} "
    for kw in keywords:
        kw_norm = normalize(kw)
        if kw_norm and f" {kw_norm}" in padded:
            return kw
    return None
