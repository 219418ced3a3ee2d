# report.py
from __future__ import annotations

from pathlib import Path

from schemas import Flag, RedFlagReport
from text_normalizer import format_evidence

MAX_EVIDENCE_CHARS = 420


def severity_label(severity: int) -> str:
    if severity >= 75:
        return "High"
    if severity >= 50:
        return "Medium"
    return "Low"


def _evidence_line(flag: Flag) -> str:
    evidence = (flag.evidence or "").replace("\r", " ").replace("\n", " ").strip()
    if len(evidence) > MAX_EVIDENCE_CHARS:
        evidence = evidence[:MAX_EVIDENCE_CHARS] + "…"
    return format_evidence(evidence, flag.pattern.strip())


def render_markdown(report: RedFlagReport, document_name: str = "document") -> str:
    lines = []
    lines.append(f"# Red Flag Report — {document_name}")
    lines.append("")
    detected = " (auto-detected)" if report.contract_type_detected else ""
    lines.append(f"**Contract type:** {report.contract_type}{detected}")
    lines.append(f"**Flags:** {len(report.flags)}")
    lines.append("")

    if report.degraded:
        lines.append("> **Warning:** the rule engine ran degraded; a clean result may be incomplete.")
        if report.library.last_error:
            lines.append(f"> Library error: {report.library.last_error}")
        elif report.library.errors:
            lines.append(f"> Invalid rules dropped from the library: {len(report.library.errors)}")
        if report.pattern_errors:
            lines.append(f"> Invalid patterns skipped: {report.pattern_errors}")
        if report.rules_timed_out:
            lines.append(f"> Rules cut short by the match time budget: {report.rules_timed_out}")
        lines.append("")

    if not report.flags:
        lines.append("No red flags found.")
        lines.append("")

    for f in report.flags:
        lines.append(f"## {f.title}")
        lines.append(f"- **Severity:** {f.severity} ({severity_label(f.severity)})")
        lines.append(f"- **Category:** {f.category}")
        lines.append(f"- **What it means:** {f.plain_english}")
        lines.append(f"- **Evidence:** {_evidence_line(f)}")
        lines.append(f"- **Location:** chars [{f.match_index[0]}-{f.match_index[1]}]")
        lines.append("")

    version = report.library.version or "unknown"
    lines.append(f"_Rules library version {version}, {report.rules_evaluated} rule(s) evaluated._")
    return "\n".join(lines) + "\n"


def save_markdown(report: RedFlagReport, out_dir: Path, document_name: str = "document") -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / "report.md"
    path.write_text(render_markdown(report, document_name), encoding="utf-8")
    return path
