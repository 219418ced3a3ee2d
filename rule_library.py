"""
Rule library loading, validation and caching.

The library is a single JSON (or YAML) document keyed by contract type:

    {
        "_version": "1.0.0",
        "insurance": {
            "payout_limit": {
                "title": "...", "patterns": ["..."], "explanation": "...",
                "category": "payout_limit", "default_severity": 60
            }
        }
    }

Top-level keys starting with "_" are metadata, not contract types.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from pattern_matcher import compile_pattern
from schemas import Rule, RuleLibraryStatus
from settings import settings

log = logging.getLogger("redflag.rules")

RuleLibrary = Dict[str, Dict[str, Rule]]

REQUIRED_RULE_FIELDS = ("title", "patterns", "explanation", "category", "default_severity")


class RuleLibraryError(ValueError):
    """The rule library could not be read, parsed or validated."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = list(errors or [])


# ---------- Parsing ----------
def read_library_file(path: Path) -> Dict[str, Any]:
    """Read the raw library document. JSON unless the suffix says YAML."""
    try:
        raw_text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise RuleLibraryError(f"Cannot read rule library {path}: {e}") from e

    try:
        if path.suffix.lower() in (".yml", ".yaml"):
            raw = yaml.safe_load(raw_text)
        else:
            raw = json.loads(raw_text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise RuleLibraryError(f"Cannot parse rule library {path}: {e}") from e

    if not isinstance(raw, dict):
        raise RuleLibraryError(f"Rule library {path} must be a mapping of contract types, got {type(raw).__name__}")
    return raw


def validate_rule(rule_id: str, raw_rule: Any) -> Tuple[Optional[Rule], List[str]]:
    """Validate one raw rule dict. Returns (rule or None, errors)."""
    if not isinstance(raw_rule, dict):
        return None, [f"Rule {rule_id} must be a mapping, got {type(raw_rule).__name__}"]

    errors: List[str] = []
    for field in REQUIRED_RULE_FIELDS:
        value = raw_rule.get(field)
        if value is None or value == "" or value == []:
            errors.append(f"Rule {rule_id} missing required field: {field}")

    patterns = raw_rule.get("patterns")
    if patterns is not None and not isinstance(patterns, list):
        errors.append(f"Rule {rule_id} patterns must be a list")
    elif patterns:
        for pattern in patterns:
            if not isinstance(pattern, str):
                errors.append(f"Rule {rule_id} pattern must be a string: {pattern!r}")
                continue
            try:
                compile_pattern(pattern)
            except re.error as e:
                errors.append(f"Invalid regex in rule {rule_id}: {pattern} ({e})")

    if errors:
        return None, errors

    try:
        rule = Rule(id=rule_id, **{k: v for k, v in raw_rule.items() if k != "id"})
    except ValidationError as e:
        return None, [f"Rule {rule_id} is invalid: {err['loc'][0]}: {err['msg']}" for err in e.errors()]
    return rule, []


def build_library(raw: Dict[str, Any], strict: bool = True) -> Tuple[RuleLibrary, List[str]]:
    """
    Validate every rule of a raw library document, collecting all errors.

    With strict=True any error rejects the library (RuleLibraryError carrying
    the full error list). Otherwise invalid rules are dropped and the errors
    are returned alongside the accepted rules.
    """
    library: RuleLibrary = {}
    errors: List[str] = []

    for contract_type, raw_rules in raw.items():
        # YAML turns keys like 2024 or "on" into int/bool
        if not isinstance(contract_type, str):
            errors.append(f"Contract type key {contract_type!r} must be a string")
            continue
        if contract_type.startswith("_"):
            continue
        if not isinstance(raw_rules, dict):
            errors.append(f"Contract type {contract_type} must map rule ids to rules")
            continue
        rules: Dict[str, Rule] = {}
        for rule_id, raw_rule in raw_rules.items():
            if not isinstance(rule_id, str):
                errors.append(f"[{contract_type}] Rule id {rule_id!r} must be a string")
                continue
            rule, rule_errors = validate_rule(rule_id, raw_rule)
            if rule_errors:
                errors.extend(f"[{contract_type}] {err}" for err in rule_errors)
                continue
            rules[rule_id] = rule
        library[contract_type] = rules

    if errors and strict:
        raise RuleLibraryError(f"Rule library failed validation with {len(errors)} error(s)", errors)
    return library, errors


# ---------- Repository ----------
class RuleLibraryRepository:
    """
    Owns one rule library and its in-memory cache.

    The library is read on first use and kept for the repository's lifetime.
    A failed load is not cached when retry_on_failure is set, so the next
    call tries again; otherwise the failure sticks until reload().
    """

    def __init__(
        self,
        path: Optional[Path | str] = None,
        retry_on_failure: Optional[bool] = None,
        strict: Optional[bool] = None,
    ):
        self.path = Path(path) if path is not None else settings.get_library_path()
        self.retry_on_failure = settings.RULES_RETRY_ON_FAILURE if retry_on_failure is None else retry_on_failure
        self.strict = settings.RULES_STRICT if strict is None else strict

        self._lock = threading.Lock()
        self._library: Optional[RuleLibrary] = None
        self._failed = False
        self._version: Optional[str] = None
        self._errors: List[str] = []
        self._last_error: Optional[str] = None
        self._attempts = 0

    def _load_locked(self) -> None:
        self._attempts += 1
        try:
            raw = read_library_file(self.path)
            library, errors = build_library(raw, strict=self.strict)
        except RuleLibraryError as e:
            self._errors = e.errors
            self._last_error = str(e)
            self._failed = True
            log.error("Failed to load rules library: %s", e)
            for err in e.errors:
                log.error("  %s", err)
            return

        for err in errors:
            log.warning("Skipping invalid rule: %s", err)

        version = raw.get("_version")
        self._version = str(version) if version is not None else None
        self._library = library
        self._errors = errors
        self._last_error = None
        self._failed = False
        log.info(
            "Loaded rules library %s (version=%s, %d rules across %d contract types)",
            self.path, self._version, sum(len(r) for r in library.values()), len(library),
        )

    def load(self) -> RuleLibrary:
        """Return the whole library, loading it on first use. Empty on failure."""
        if self._library is not None:
            return self._library
        with self._lock:
            if self._library is None and (self.retry_on_failure or not self._failed):
                self._load_locked()
            return self._library or {}

    def get_rules(self, contract_type: str) -> Dict[str, Rule]:
        """Rules for one contract type; {} if the type is unknown or loading failed."""
        return self.load().get(contract_type, {})

    def contract_types(self) -> List[str]:
        return list(self.load().keys())

    @property
    def loaded(self) -> bool:
        return self._library is not None

    def reload(self) -> RuleLibrary:
        with self._lock:
            self._library = None
            self._failed = False
        return self.load()

    def status(self) -> RuleLibraryStatus:
        """Health signal: distinguishes an empty rule set from a failed load."""
        library = self._library or {}
        counts = {ctype: len(rules) for ctype, rules in library.items()}
        return RuleLibraryStatus(
            path=str(self.path),
            loaded=self._library is not None,
            version=self._version,
            contract_types=counts,
            rule_count=sum(counts.values()),
            errors=list(self._errors),
            last_error=self._last_error,
            attempts=self._attempts,
        )


# ---------- Process-wide default ----------
_default_repository: Optional[RuleLibraryRepository] = None
_default_lock = threading.Lock()


def get_default_repository() -> RuleLibraryRepository:
    global _default_repository
    if _default_repository is None:
        with _default_lock:
            if _default_repository is None:
                _default_repository = RuleLibraryRepository()
    return _default_repository


def set_default_repository(repository: Optional[RuleLibraryRepository]) -> None:
    """Swap the process-wide repository (None resets to settings on next use)."""
    global _default_repository
    with _default_lock:
        _default_repository = repository


def load_rules(contract_type: str = "insurance") -> Dict[str, Rule]:
    return get_default_repository().get_rules(contract_type)
