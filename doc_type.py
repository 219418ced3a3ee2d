"""
Contract type detection by keyword scoring over the head of a document.
"""

import logging
import re
from typing import Dict, List, NamedTuple, Optional, Tuple

from schemas import ContractType
from settings import settings
from text_normalizer import normalize_text

log = logging.getLogger("redflag.doc_type")


class DocTypeCandidate(NamedTuple):
    """A candidate contract type with its keyword score."""
    contract_type: ContractType
    score: int
    hits: int


# Enumeration order doubles as the tie-break order.
CONTRACT_TYPE_KEYWORDS: Dict[ContractType, List[str]] = {
    ContractType.INSURANCE: [
        "insurance", "policy", "coverage", "premium", "deductible", "insurer", "insured", "claim",
    ],
    ContractType.LEASE: [
        "lease", "tenancy", "tenant", "landlord", "rental agreement", "premises", "lessor", "lessee",
    ],
    ContractType.EMPLOYMENT: [
        "employment", "employee", "employer", "salary", "probation", "termination", "workplace",
    ],
    ContractType.SOFTWARE: [
        "software", "license", "saas", "subscription", "user", "developer", "api", "platform",
    ],
}


def _compile_keywords() -> Dict[ContractType, List[re.Pattern]]:
    # Leading word boundary only, so "claims" and "licensee" still count.
    return {
        ctype: [re.compile(rf"\b{re.escape(kw)}") for kw in keywords]
        for ctype, keywords in CONTRACT_TYPE_KEYWORDS.items()
    }


_KEYWORD_PATTERNS = _compile_keywords()


def score_contract_types(
    text: Optional[str],
    window_chars: Optional[int] = None,
    presence_bonus: Optional[int] = None,
) -> List[DocTypeCandidate]:
    """
    Score every known contract type against the first window_chars of text.

    A type scores 0 when none of its keywords occur, otherwise the presence
    bonus plus one point per occurrence beyond the first.
    """
    window = settings.DOC_TYPE_WINDOW_CHARS if window_chars is None else window_chars
    bonus = settings.DOC_TYPE_PRESENCE_BONUS if presence_bonus is None else presence_bonus

    head = normalize_text((text or "")[:window]).lower()

    candidates: List[DocTypeCandidate] = []
    for ctype, patterns in _KEYWORD_PATTERNS.items():
        hits = sum(len(rx.findall(head)) for rx in patterns)
        score = bonus + (hits - 1) if hits else 0
        candidates.append(DocTypeCandidate(contract_type=ctype, score=score, hits=hits))
    return candidates


def classify_contract_type(
    text: Optional[str],
    window_chars: Optional[int] = None,
    presence_bonus: Optional[int] = None,
    min_score: Optional[int] = None,
) -> Tuple[ContractType, List[DocTypeCandidate], str]:
    """
    Classify a document and explain the choice.

    Returns:
        (contract_type, candidates, selection_reason)
    """
    threshold = settings.DOC_TYPE_MIN_SCORE if min_score is None else min_score
    candidates = score_contract_types(text, window_chars=window_chars, presence_bonus=presence_bonus)

    best: Optional[DocTypeCandidate] = None
    for cand in candidates:
        if best is None or cand.score > best.score:
            best = cand

    if best is None or best.score < threshold:
        top = best.score if best else 0
        return ContractType.GENERAL, candidates, f"below_threshold (best={top}, min_score={threshold})"

    return best.contract_type, candidates, f"keyword_score (score={best.score}, hits={best.hits})"


def detect_contract_type(text: Optional[str]) -> ContractType:
    ctype, _, reason = classify_contract_type(text)
    log.debug("Detected contract type %s: %s", ctype.value, reason)
    return ctype
