"""
Fuzzy resolution of a query against the catalog.

Matching is a case-insensitive subsequence search over a function's name,
description and file name. Each matched character scores a base amount;
characters that start a word or continue a contiguous run score more, gaps
cost a little. Whitespace separates terms and every term has to match.

Ordering is score first, then an exact name match, then the shorter name,
then discovery order, so identical inputs always rank identically.
"""

import os
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .models import Catalog, Function, ScriptFile

SCORE_MATCH = 16
BONUS_BOUNDARY = 8
BONUS_FIRST_CHAR = 8
BONUS_CONSECUTIVE = 6
PENALTY_GAP_START = 3
PENALTY_GAP_EXTENSION = 1
BONUS_NAME_FIELD = 12
BONUS_NAME_PREFIX = 40
BONUS_EXACT_NAME = 1000

# How many candidate start positions to try per term
MAX_STARTS = 32

_SEPARATORS = " _-./:,;()[]"


@dataclass(frozen=True)
class Match:
    function: Function
    score: int
    exact: bool
    order: int

    @property
    def sort_key(self) -> Tuple[int, bool, int, int]:
        return (-self.score, not self.exact, len(self.function.name), self.order)


def _is_boundary(text: str, pos: int) -> bool:
    if pos == 0:
        return True
    prev, cur = text[pos - 1], text[pos]
    if prev in _SEPARATORS:
        return True
    return prev.islower() and cur.isupper()


def _positions_from(pattern: str, lowered: str, start: int) -> Optional[List[int]]:
    """Greedy forward match from start, then tightened backwards from the end."""
    pi = 0
    end = -1
    for ti in range(start, len(lowered)):
        if lowered[ti] == pattern[pi]:
            pi += 1
            if pi == len(pattern):
                end = ti
                break
    if end < 0:
        return None

    positions = []
    pi = len(pattern) - 1
    for ti in range(end, start - 1, -1):
        if lowered[ti] == pattern[pi]:
            positions.append(ti)
            pi -= 1
            if pi < 0:
                break
    positions.reverse()
    return positions


def _score_positions(text: str, positions: List[int]) -> int:
    score = 0
    prev = None
    for k, pos in enumerate(positions):
        points = SCORE_MATCH
        if _is_boundary(text, pos):
            points += BONUS_BOUNDARY
            if k == 0:
                points += BONUS_FIRST_CHAR
        if prev is not None:
            if pos == prev + 1:
                points += BONUS_CONSECUTIVE
            else:
                gap = pos - prev - 1
                points -= PENALTY_GAP_START + PENALTY_GAP_EXTENSION * (gap - 1)
        score += points
        prev = pos
    return score


def score_term(term: str, text: str) -> Optional[int]:
    """
    Best score of one lower-cased term as a subsequence of text.
    None when the term does not occur.
    """
    if not term:
        return 0
    lowered = text.lower()
    best = None
    tried = 0
    start = lowered.find(term[0])
    while start != -1 and tried < MAX_STARTS:
        positions = _positions_from(term, lowered, start)
        if positions is None:
            break
        score = _score_positions(text, positions)
        if best is None or score > best:
            best = score
        tried += 1
        start = lowered.find(term[0], start + 1)
    return best


def score_function(function: Function, query: str) -> Optional[int]:
    """Score a function against a query; None when it does not match."""
    lowered = query.strip().lower()
    terms = lowered.split()
    total = 0
    for term in terms:
        corpus_score = score_term(term, function.search_text)
        if corpus_score is None:
            return None
        name_score = score_term(term, function.name)
        if name_score is not None:
            corpus_score = max(corpus_score, name_score + BONUS_NAME_FIELD)
        total += corpus_score

    name = function.name.lower()
    if name == lowered:
        total += BONUS_EXACT_NAME
    elif name.startswith(lowered):
        total += BONUS_NAME_PREFIX
    return total


def rank(catalog: Catalog, query: Optional[str] = "", include_private: bool = True) -> List[Match]:
    """
    Rank the catalog's functions against a query.

    An empty query returns every function in discovery order (browse mode).
    An empty list means nothing matched; it is not an error.
    """
    candidates = [
        f for f in catalog.functions
        if include_private or not f.is_private
    ]
    query = (query or "").strip()

    if not query:
        return [Match(f, 0, False, order) for order, f in enumerate(candidates)]

    lowered = query.lower()
    matches = []
    for order, function in enumerate(candidates):
        score = score_function(function, query)
        if score is None:
            continue
        matches.append(Match(function, score, function.name.lower() == lowered, order))

    matches.sort(key=lambda m: m.sort_key)
    return matches


def _script_matches(script: ScriptFile, name: str) -> bool:
    if name in (script.name, script.stem, script.path):
        return True
    candidate = os.path.abspath(os.path.expanduser(name))
    return candidate == script.path or os.path.realpath(candidate) == os.path.realpath(script.path)


def find_scripts(catalog: Catalog, name: str) -> List[ScriptFile]:
    """Scripts whose file name, stem or path equals name."""
    return [script for script in catalog.scripts if _script_matches(script, name)]


def find_function(catalog: Catalog, name: str, script: Optional[str] = None) -> List[Function]:
    """
    Exact lookup by function name, optionally within one script.
    Several results mean the name is defined in several files.
    """
    scripts: Sequence[ScriptFile] = find_scripts(catalog, script) if script else catalog.scripts
    return [f for s in scripts for f in s.functions if f.name == name]
