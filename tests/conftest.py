import copy
import json
from pathlib import Path

import pytest

from red_flags import RedFlagEngine
from rule_library import RuleLibraryRepository
from settings import DEFAULT_LIBRARY_PATH

FIXTURES_DIR = Path(__file__).parent / "fixtures"


SAMPLE_LIBRARY = {
    "_version": "test-1",
    "insurance": {
        "payout_limit": {
            "title": "Payout Limit",
            "patterns": ["maximum(?:\\s+payable)?(?:\\s+amount)?\\s+(?:is|shall not exceed)\\s+R?\\s?\\d[\\d\\s,]*"],
            "explanation": "The insurer only pays up to a fixed amount.",
            "category": "payout_limit",
            "default_severity": 60,
        },
        "waiting_period": {
            "title": "Waiting Period",
            "patterns": ["waiting\\s+period"],
            "explanation": "No cover during the first months.",
            "category": "waiting_period",
            "default_severity": 40,
        },
    },
    "lease": {
        "deposit_forfeiture": {
            "title": "Deposit Forfeiture",
            "patterns": ["deposit\\s+(?:shall|will)\\s+be\\s+forfeited"],
            "explanation": "You can lose your whole deposit.",
            "category": "deposit",
            "default_severity": 65,
        },
    },
}


@pytest.fixture
def write_library(tmp_path):
    """Write a library dict to a temp JSON file and return its path."""
    def _write(library, name="library.json"):
        path = tmp_path / name
        path.write_text(json.dumps(library), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def sample_library():
    return copy.deepcopy(SAMPLE_LIBRARY)


@pytest.fixture
def sample_repository(write_library, sample_library):
    return RuleLibraryRepository(write_library(sample_library), retry_on_failure=True, strict=True)


@pytest.fixture
def bundled_repository():
    return RuleLibraryRepository(DEFAULT_LIBRARY_PATH, retry_on_failure=True, strict=True)


@pytest.fixture
def engine(bundled_repository):
    return RedFlagEngine(bundled_repository)


@pytest.fixture
def trap_examples():
    return json.loads((FIXTURES_DIR / "common_traps_examples.json").read_text(encoding="utf-8"))
