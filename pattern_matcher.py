"""
Runs rule patterns against document text.
"""

import logging
import re
import time
from functools import lru_cache
from typing import List, NamedTuple, Optional, Tuple

from schemas import Match, MatchSelectionPolicy, Rule
from settings import settings
from severity import score_severity

log = logging.getLogger("redflag.matcher")


class RuleMatches(NamedTuple):
    rule_id: str
    matches: List[Match]
    pattern_errors: List[str]
    timed_out: bool


_BRACE_QUANTIFIER = re.compile(r"\{(\d*)(,?)(\d*)\}")


def _quantifier_at(pattern: str, i: int) -> Tuple[bool, bool]:
    """(repeats more than once, unbounded) for a quantifier starting at pattern[i]."""
    if i >= len(pattern):
        return False, False
    ch = pattern[i]
    if ch in "*+":
        return True, True
    if ch == "{":
        m = _BRACE_QUANTIFIER.match(pattern, i)
        if m:
            low, comma, high = m.groups()
            if comma and not high:
                return True, True
            upper = int(high or low or 0)
            return upper > 1, False
    return False, False


def _skip_class(pattern: str, i: int) -> int:
    j = i + 1
    if j < len(pattern) and pattern[j] == "^":
        j += 1
    if j < len(pattern) and pattern[j] == "]":
        j += 1
    while j < len(pattern) and pattern[j] != "]":
        j += 2 if pattern[j] == "\\" else 1
    return j + 1


def has_nested_quantifier(pattern: str) -> bool:
    """
    True when a repeated group contains an unbounded quantifier, as in
    "(a+)+" or "(?:\\s*x){2,}". Python's re cannot be interrupted inside a
    single search, and these shapes backtrack exponentially on near-misses.

    Ambiguous alternations such as "(a|a)*" are not detected.
    """
    # one flag per open group: does it contain an unbounded quantifier
    stack: List[bool] = [False]
    i, n = 0, len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "\\":
            i += 2
        elif ch == "[":
            i = _skip_class(pattern, i)
        elif ch == "(":
            stack.append(False)
            i += 1
            continue
        elif ch == ")" and len(stack) > 1:
            inner = stack.pop()
            i += 1
            repeats, unbounded = _quantifier_at(pattern, i)
            if repeats and inner:
                return True
            stack[-1] = stack[-1] or inner or unbounded
            continue
        else:
            i += 1

        if _quantifier_at(pattern, i)[1]:
            stack[-1] = True
    return False


@lru_cache(maxsize=2048)
def compile_pattern(pattern: str) -> re.Pattern:
    """Compile a rule pattern case-insensitively. Raises re.error on bad or unsafe input."""
    if has_nested_quantifier(pattern):
        raise re.error("nested quantifier can backtrack catastrophically", pattern)
    return re.compile(pattern, re.IGNORECASE)


def find_matches(rule: Rule, text: str, time_budget: Optional[float] = None) -> RuleMatches:
    """
    Collect every non-overlapping match of each of the rule's patterns.

    Matches are kept in pattern order, then position order. A pattern that
    does not compile, or that repeats an unbounded quantifier inside a
    repeated group, is skipped with a warning. Once the rule has spent more
    than time_budget seconds, collection stops and timed_out is set. The
    budget is checked between matches, not inside a single search.
    """
    budget = settings.MATCH_TIME_BUDGET_SECONDS if time_budget is None else time_budget
    matches: List[Match] = []
    errors: List[str] = []
    timed_out = False

    if not text:
        return RuleMatches(rule.id, matches, errors, timed_out)

    started = time.monotonic()
    for pattern in rule.patterns:
        try:
            rx = compile_pattern(pattern)
        except re.error as e:
            log.warning("Invalid regex for rule %s: %s (%s)", rule.id, pattern, e)
            errors.append(pattern)
            continue

        for m in rx.finditer(text):
            if m.end() > m.start():
                matches.append(Match(start=m.start(), end=m.end(), text=m.group(0), source=text))
            if time.monotonic() - started > budget:
                timed_out = True
                break

        if not timed_out and time.monotonic() - started > budget:
            timed_out = True
        if timed_out:
            log.warning(
                "Matching for rule %s exceeded %.2fs budget; kept %d match(es)",
                rule.id, budget, len(matches),
            )
            break

    return RuleMatches(rule.id, matches, errors, timed_out)


def select_match(
    matches: List[Match],
    rule: Rule,
    policy: MatchSelectionPolicy = MatchSelectionPolicy.FIRST,
) -> Optional[Match]:
    """Pick the match a flag is built from."""
    if not matches:
        return None
    if policy == MatchSelectionPolicy.HIGHEST_SEVERITY:
        # max() keeps the earliest match on ties
        return max(matches, key=lambda m: score_severity(m, rule))
    return matches[0]
