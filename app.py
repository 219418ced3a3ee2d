# app.py
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from doc_type import classify_contract_type
from red_flags import RedFlagEngine, get_default_engine
from report import render_markdown
from schemas import DocTypeScore, RedFlagReport, Rule, RuleLibraryStatus
from telemetry import configure_logging

log = logging.getLogger("redflag.api")

app = FastAPI(title="Contract Red Flag API")

# CORS for local Vite (http://localhost:5173 by default)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --------- Schemas (Pydantic) ---------
class AnalyzeIn(BaseModel):
    text: Optional[str] = None
    contract_type: Optional[str] = None
    max_flags: Optional[int] = Field(default=None, ge=0)
    document_name: str = "document"


class DetectTypeIn(BaseModel):
    text: str = ""


class DetectTypeOut(BaseModel):
    contract_type: str
    candidates: List[DocTypeScore]
    reason: str


# --------- Dependencies ---------
def get_engine() -> RedFlagEngine:
    return get_default_engine()


def _run_analysis(body: AnalyzeIn, engine: RedFlagEngine) -> RedFlagReport:
    if not body.text or not body.text.strip():
        raise HTTPException(400, "No text could be extracted from the document")
    report = engine.analyze(body.text, contract_type=body.contract_type, max_flags=body.max_flags)
    if report.degraded:
        log.warning(
            "Analysis ran degraded (library_loaded=%s, pattern_errors=%d, timed_out=%d)",
            report.library.loaded, report.pattern_errors, report.rules_timed_out,
        )
    return report


# --------- Endpoints ---------

@app.on_event("startup")
def _startup():
    configure_logging()
    # Load the library before the first request instead of racing on it
    engine = get_default_engine()
    engine.repository.load()
    status = engine.repository.status()
    if not status.loaded:
        log.error("Rules library unavailable at startup: %s", status.last_error)


@app.post("/analyze", response_model=RedFlagReport)
def analyze_document(body: AnalyzeIn, engine: RedFlagEngine = Depends(get_engine)):
    return _run_analysis(body, engine)


@app.post("/analyze.md", response_class=PlainTextResponse)
def analyze_document_markdown(body: AnalyzeIn, engine: RedFlagEngine = Depends(get_engine)):
    report = _run_analysis(body, engine)
    return PlainTextResponse(render_markdown(report, body.document_name), media_type="text/markdown")


@app.post("/detect-type", response_model=DetectTypeOut)
def detect_type(body: DetectTypeIn):
    ctype, candidates, reason = classify_contract_type(body.text)
    return DetectTypeOut(
        contract_type=ctype.value,
        candidates=[
            DocTypeScore(contract_type=c.contract_type.value, score=c.score, hits=c.hits)
            for c in candidates
        ],
        reason=reason,
    )


@app.get("/rules/status", response_model=RuleLibraryStatus)
def rules_status(engine: RedFlagEngine = Depends(get_engine)):
    engine.repository.load()
    return engine.repository.status()


@app.get("/rules/{contract_type}", response_model=List[Rule])
def list_rules(contract_type: str, engine: RedFlagEngine = Depends(get_engine)):
    rules = engine.repository.get_rules(contract_type)
    if not rules:
        raise HTTPException(status_code=404, detail=f"No rules found for contract type '{contract_type}'")
    return list(rules.values())
