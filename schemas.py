# schemas.py
from __future__ import annotations

from enum import Enum
from typing import Dict, List, NamedTuple, Optional

from pydantic import BaseModel, Field

DEFAULT_SEVERITY = 50


class ContractType(str, Enum):
    INSURANCE = "insurance"
    LEASE = "lease"
    EMPLOYMENT = "employment"
    SOFTWARE = "software"
    GENERAL = "general"


class MatchSelectionPolicy(str, Enum):
    """Which of a rule's matches is carried forward to scoring."""
    FIRST = "first"
    HIGHEST_SEVERITY = "highest_severity"


# ---------- Rule library ----------
class Rule(BaseModel):
    id: str
    title: str
    patterns: List[str] = Field(default_factory=list)
    explanation: str
    category: str
    default_severity: int = Field(default=DEFAULT_SEVERITY, ge=0, le=100)


class RuleLibraryStatus(BaseModel):
    path: str
    loaded: bool = False
    version: Optional[str] = None
    contract_types: Dict[str, int] = Field(default_factory=dict)  # type -> rule count
    rule_count: int = 0
    errors: List[str] = Field(default_factory=list)
    last_error: Optional[str] = None
    attempts: int = 0


# ---------- Matching ----------
class Match(NamedTuple):
    """One occurrence of a rule pattern inside a document."""
    start: int
    end: int
    text: str
    source: str


# ---------- Findings ----------
class Flag(BaseModel):
    id: str
    title: str
    severity: int = Field(ge=0, le=100)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    plain_english: str
    evidence: str
    pattern: str
    match_index: List[int]  # [start, end]
    category: str


class DocTypeScore(BaseModel):
    contract_type: str
    score: int
    hits: int


class RedFlagReport(BaseModel):
    contract_type: str
    contract_type_detected: bool = False
    doc_type_candidates: List[DocTypeScore] = Field(default_factory=list)
    flags: List[Flag] = Field(default_factory=list)
    rules_evaluated: int = 0
    pattern_errors: int = 0
    rules_timed_out: int = 0
    library: RuleLibraryStatus
    degraded: bool = False
