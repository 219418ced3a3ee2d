#!/usr/bin/env python3
"""
Rule Library Validation Script
Validates a red-flag rule library (JSON or YAML) before it ships.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from rule_library import RuleLibraryError, build_library, read_library_file
from settings import settings


def find_duplicate_ids(raw: Dict[str, Any]) -> List[str]:
    """Rule ids reused across contract types (allowed, but confusing in reports)."""
    seen: Dict[str, str] = {}
    warnings: List[str] = []
    for contract_type, rules in raw.items():
        if not isinstance(contract_type, str) or contract_type.startswith("_") or not isinstance(rules, dict):
            continue
        for rule_id in rules:
            if rule_id in seen:
                warnings.append(f"Duplicate rule ID {rule_id} in {contract_type} (also in {seen[rule_id]})")
            else:
                seen[rule_id] = contract_type
    return warnings


def validate_library_file(path: Path) -> Dict[str, Any]:
    """Validate a single library file."""
    result = {
        "file": str(path),
        "valid": True,
        "version": None,
        "contract_types": {},
        "errors": [],
        "warnings": [],
    }

    try:
        raw = read_library_file(path)
    except RuleLibraryError as e:
        result["valid"] = False
        result["errors"].append(str(e))
        return result

    result["version"] = raw.get("_version")
    if result["version"] is None:
        result["warnings"].append("Library has no _version")

    library, errors = build_library(raw, strict=False)
    result["contract_types"] = {ctype: len(rules) for ctype, rules in library.items()}
    result["errors"].extend(errors)
    result["warnings"].extend(find_duplicate_ids(raw))

    if result["errors"]:
        result["valid"] = False
    return result


def main(argv: Optional[List[str]] = None) -> int:
    """Main validation function."""
    args = sys.argv[1:] if argv is None else argv
    path = Path(args[0]) if args else settings.get_library_path()

    print(f"Validating rules library {path}...")
    print("=" * 60)

    result = validate_library_file(path)

    for ctype, count in result["contract_types"].items():
        print(f"Checking contract type: {ctype} ({count} valid rules)")

    for error in result["errors"]:
        print(f"  ERROR: {error}")
    for warning in result["warnings"]:
        print(f"  WARNING: {warning}")

    print("=" * 60)
    if result["valid"]:
        print("Validation successful! No errors found.")
        return 0
    print(f"Validation failed with {len(result['errors'])} errors.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
