# main.py: local runner that scans a text file for red flags and prints the report
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from red_flags import RedFlagEngine
from report import render_markdown
from rule_library import RuleLibraryRepository
from schemas import MatchSelectionPolicy
from settings import settings
from telemetry import configure_logging


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Scan an extracted contract text for red flags.")
    p.add_argument("file", help="UTF-8 text file to scan, or '-' for stdin")
    p.add_argument("--type", dest="contract_type", default=None,
                   help="contract type hint (insurance, lease, employment, software, general); auto-detected if omitted")
    p.add_argument("--max-flags", type=int, default=settings.MAX_FLAGS)
    p.add_argument("--format", choices=["json", "md"], default="json")
    p.add_argument("--rules", default=None, help="rule library path (defaults to RF_RULES_LIBRARY_PATH)")
    p.add_argument("--policy", choices=[m.value for m in MatchSelectionPolicy], default=None,
                   help="which match of a rule to score")
    return p


def read_input(file_arg: str) -> str:
    if file_arg == "-":
        return sys.stdin.read()
    return Path(file_arg).read_text(encoding="utf-8", errors="replace")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    try:
        text = read_input(args.file)
    except OSError as e:
        print(f"ERROR: cannot read {args.file}: {e}", file=sys.stderr)
        return 2

    repository = RuleLibraryRepository(args.rules)
    engine = RedFlagEngine(repository, policy=args.policy)
    report = engine.analyze(text, contract_type=args.contract_type, max_flags=args.max_flags)

    if args.format == "md":
        name = "stdin" if args.file == "-" else Path(args.file).name
        sys.stdout.write(render_markdown(report, name))
    else:
        print(json.dumps(report.model_dump(), indent=2, ensure_ascii=False))

    return 1 if report.degraded else 0


if __name__ == "__main__":
    sys.exit(main())
