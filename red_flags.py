"""
Red-flag detection: resolves the contract type, runs every rule of that type
over the document and assembles one ranked flag per triggered rule.
"""

import logging
from typing import List, Optional

from doc_type import classify_contract_type
from pattern_matcher import find_matches, select_match
from rule_library import RuleLibraryRepository, get_default_repository
from schemas import DocTypeScore, Flag, MatchSelectionPolicy, RedFlagReport
from settings import settings
from severity import score_severity
from text_normalizer import shortest_sentence_containing

log = logging.getLogger("redflag.engine")

# Exact regex matches only; kept as a field so fuzzy matching can lower it later.
EXACT_MATCH_CONFIDENCE = 1.0


class RedFlagEngine:
    """Stateless matching pipeline over an injected rule repository."""

    def __init__(
        self,
        repository: RuleLibraryRepository,
        policy: Optional[MatchSelectionPolicy] = None,
        confidence_threshold: Optional[float] = None,
        time_budget: Optional[float] = None,
    ):
        self.repository = repository
        self.policy = MatchSelectionPolicy(policy or settings.MATCH_POLICY)
        self.confidence_threshold = (
            settings.CONFIDENCE_THRESHOLD if confidence_threshold is None else confidence_threshold
        )
        self.time_budget = time_budget

    def analyze(
        self,
        text: Optional[str],
        contract_type: Optional[str] = None,
        max_flags: Optional[int] = None,
    ) -> RedFlagReport:
        """Run the full pipeline and return flags plus an engine-health summary."""
        text = text or ""
        limit = settings.get_max_flags(max_flags)

        candidates: List[DocTypeScore] = []
        detected = not contract_type
        if detected:
            ctype, scored, reason = classify_contract_type(text)
            type_to_use = ctype.value
            candidates = [
                DocTypeScore(contract_type=c.contract_type.value, score=c.score, hits=c.hits)
                for c in scored
            ]
            log.info("Analyzing document as type: %s (%s)", type_to_use, reason)
        else:
            type_to_use = str(contract_type)
            log.info("Analyzing document as type: %s", type_to_use)

        rules = self.repository.get_rules(type_to_use)
        if not rules:
            log.info("No rules found for type %s", type_to_use)

        flags: List[Flag] = []
        rules_evaluated = 0
        pattern_errors = 0
        timed_out = 0

        for rule_id, rule in rules.items():
            if len(flags) >= limit:
                break
            rules_evaluated += 1

            found = find_matches(rule, text, time_budget=self.time_budget)
            pattern_errors += len(found.pattern_errors)
            timed_out += int(found.timed_out)

            chosen = select_match(found.matches, rule, self.policy)
            if chosen is None:
                continue

            confidence = EXACT_MATCH_CONFIDENCE
            if confidence < self.confidence_threshold:
                continue

            flags.append(Flag(
                id=rule_id,
                title=rule.title,
                severity=score_severity(chosen, rule),
                confidence=confidence,
                plain_english=rule.explanation,
                evidence=shortest_sentence_containing(text, chosen.start, chosen.end),
                pattern=chosen.text,
                match_index=[chosen.start, chosen.end],
                category=rule.category,
            ))

        # sorted() is stable, so equal severities keep library order
        flags = sorted(flags, key=lambda f: -f.severity)

        library = self.repository.status()
        return RedFlagReport(
            contract_type=type_to_use,
            contract_type_detected=detected,
            doc_type_candidates=candidates,
            flags=flags,
            rules_evaluated=rules_evaluated,
            pattern_errors=pattern_errors,
            rules_timed_out=timed_out,
            library=library,
            degraded=(not library.loaded) or bool(library.errors) or pattern_errors > 0 or timed_out > 0,
        )

    def find_red_flags(
        self,
        text: Optional[str],
        contract_type: Optional[str] = None,
        max_flags: Optional[int] = None,
    ) -> List[Flag]:
        return self.analyze(text, contract_type=contract_type, max_flags=max_flags).flags


# Global engine instance over the default repository
_engine: Optional[RedFlagEngine] = None


def get_default_engine() -> RedFlagEngine:
    global _engine
    repository = get_default_repository()
    if _engine is None or _engine.repository is not repository:
        _engine = RedFlagEngine(repository)
    return _engine


def find_red_flags(text: Optional[str], contract_type: Optional[str] = None, max_flags: int = 20) -> List[Flag]:
    return get_default_engine().find_red_flags(text, contract_type=contract_type, max_flags=max_flags)


def analyze(text: Optional[str], contract_type: Optional[str] = None, max_flags: int = 20) -> RedFlagReport:
    return get_default_engine().analyze(text, contract_type=contract_type, max_flags=max_flags)
