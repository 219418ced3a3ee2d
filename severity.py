"""
Contextual severity scoring for a single rule match.
"""

import re

from schemas import Match, Rule
from text_normalizer import shortest_sentence_containing

MIN_SEVERITY = 0
MAX_SEVERITY = 100

NUMERIC_BONUS = 10
HEDGE_BONUS = 10
EXCEPTION_PENALTY = 10

_DIGIT = re.compile(r"[0-9]")
_HEDGE_WORDS = re.compile(r"(?:reasonable|sufficient)", re.IGNORECASE)
_EXCEPTION_MARKERS = re.compile(r"(?:except|unless|provided that)", re.IGNORECASE)


def clamp_severity(score: int) -> int:
    return min(MAX_SEVERITY, max(MIN_SEVERITY, score))


def score_severity(match: Match, rule: Rule) -> int:
    """
    Adjust the rule's default severity using the match and its sentence.

      +10  matched text contains a digit (a concrete cap or limit)
      +10  the sentence uses a hedge word ("reasonable", "sufficient")
      -10  the sentence carves out an exception ("except", "unless", "provided that")

    Adjustments add up first, then the result is clamped to [0, 100].
    """
    score = rule.default_severity
    evidence = shortest_sentence_containing(match.source, match.start, match.end)

    if _DIGIT.search(match.text):
        score += NUMERIC_BONUS
    if _HEDGE_WORDS.search(evidence):
        score += HEDGE_BONUS
    if _EXCEPTION_MARKERS.search(evidence):
        score -= EXCEPTION_PENALTY

    return clamp_severity(score)
