"""Tests for the rule library validator script."""

import validate_rules
from settings import DEFAULT_LIBRARY_PATH


def test_bundled_library_is_valid():
    result = validate_rules.validate_library_file(DEFAULT_LIBRARY_PATH)
    assert result["valid"] is True
    assert result["errors"] == []
    assert result["version"] == "1.0.0"
    assert result["contract_types"]["insurance"] == 8


def test_broken_rules_are_reported(write_library, sample_library):
    sample_library["insurance"]["waiting_period"]["patterns"] = ["(unclosed"]
    del sample_library["lease"]["deposit_forfeiture"]["title"]
    result = validate_rules.validate_library_file(write_library(sample_library))

    assert result["valid"] is False
    assert len(result["errors"]) == 2
    assert result["contract_types"] == {"insurance": 1, "lease": 0}


def test_duplicate_ids_and_missing_version_are_warnings(write_library, sample_library):
    del sample_library["_version"]
    sample_library["lease"]["payout_limit"] = dict(sample_library["insurance"]["payout_limit"])
    result = validate_rules.validate_library_file(write_library(sample_library))

    assert result["valid"] is True
    assert "Library has no _version" in result["warnings"]
    assert any("Duplicate rule ID payout_limit in lease" in w for w in result["warnings"])


def test_unreadable_library(tmp_path):
    path = tmp_path / "library.json"
    path.write_text("{ nope", encoding="utf-8")
    result = validate_rules.validate_library_file(path)
    assert result["valid"] is False
    assert "Cannot parse rule library" in result["errors"][0]


def test_main_exit_codes(write_library, sample_library, capsys):
    assert validate_rules.main([str(DEFAULT_LIBRARY_PATH)]) == 0
    assert "Validation successful! No errors found." in capsys.readouterr().out

    sample_library["insurance"]["payout_limit"]["default_severity"] = 400
    assert validate_rules.main([str(write_library(sample_library))]) == 1
    out = capsys.readouterr().out
    assert "Checking contract type: insurance (1 valid rules)" in out
    assert "Validation failed with 1 errors." in out


def test_undecodable_library_fails_validation(tmp_path, capsys):
    path = tmp_path / "library.json"
    path.write_bytes(b'{"insurance": {"\xff\xfe": 1}}')
    assert validate_rules.main([str(path)]) == 1
    assert "Cannot read rule library" in capsys.readouterr().out
