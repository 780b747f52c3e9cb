"""
Exact and approximate key filtering.

Both modes are pure functions over a key sequence. Fuzzy matching follows the
scoring scheme of the sahilm/fuzzy Go library (itself modelled on Sublime
Text's fuzzy finder), so the bonus and penalty constants below are its values.
It is a subsequence match: every query character must appear in the key in order.
Matches are scored with bonuses for hits on the first character, after a
separator, on a camel-case hump and on consecutive characters, and with
penalties for unmatched characters.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .records import FilterMode, FilterSpec

FIRST_CHAR_MATCH_BONUS = 10
SEPARATOR_MATCH_BONUS = 20
CAMEL_CASE_MATCH_BONUS = 20
ADJACENT_MATCH_BONUS = 5
UNMATCHED_LEADING_CHAR_PENALTY = -5
MAX_UNMATCHED_LEADING_CHAR_PENALTY = -15
UNMATCHED_CHAR_PENALTY = -1

SEPARATORS = frozenset('/-_ .\\:')


@dataclass(frozen=True)
class FuzzyMatch:
    key: str
    index: int
    score: int
    matched_indexes: tuple


def _score(query: str, candidate: str) -> Optional[FuzzyMatch]:
    if not query:
        return None

    lowered = candidate.lower()
    needle = query.lower()
    matched = []
    score = 0
    qi = 0
    previous_matched = False

    for ci, char in enumerate(lowered):
        if qi < len(needle) and char == needle[qi]:
            if ci == 0:
                score += FIRST_CHAR_MATCH_BONUS
            elif candidate[ci - 1] in SEPARATORS:
                score += SEPARATOR_MATCH_BONUS
            elif candidate[ci].isupper() and candidate[ci - 1].islower():
                score += CAMEL_CASE_MATCH_BONUS
            if previous_matched:
                score += ADJACENT_MATCH_BONUS
            matched.append(ci)
            previous_matched = True
            qi += 1
        else:
            previous_matched = False

    if qi < len(needle):
        return None

    leading = matched[0]
    score += max(UNMATCHED_LEADING_CHAR_PENALTY * leading, MAX_UNMATCHED_LEADING_CHAR_PENALTY)
    score += UNMATCHED_CHAR_PENALTY * (len(candidate) - len(matched))
    return FuzzyMatch(key=candidate, index=-1, score=score, matched_indexes=tuple(matched))


def fuzzy_find(query: str, keys: Sequence[str]) -> List[FuzzyMatch]:
    """
    Rank keys that contain ``query`` as a case-insensitive subsequence.

    Results are ordered by descending score; equal scores keep input order.
    """
    matches = []
    for index, key in enumerate(keys):
        match = _score(query, key)
        if match is not None:
            matches.append(FuzzyMatch(key=key, index=index, score=match.score,
                                      matched_indexes=match.matched_indexes))
    matches.sort(key=lambda m: (-m.score, m.index))
    return matches


def strict_filter(query: str, keys: Sequence[str]) -> List[str]:
    needle = query.lower()
    return [key for key in keys if needle in key.lower()]


def filter_keys(keys: Sequence[str], spec: FilterSpec) -> List[str]:
    """Apply ``spec`` to ``keys``; an empty query or OFF mode passes everything."""
    if not spec.active:
        return list(keys)
    if spec.mode is FilterMode.STRICT:
        return strict_filter(spec.query, keys)
    return [match.key for match in fuzzy_find(spec.query, keys)]
