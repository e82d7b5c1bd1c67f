import pytest
from fastapi.testclient import TestClient

import main
from main import app
from rules import DEFAULT_RULES, RuleSet

client = TestClient(app)

CSV = (
    "SSN,Empe Amt/Pct,Start Date,Deduction,Hlth Ins Carrie,Hlth Ins Cvrage,Hlth Ins Level,Hlth Ins Plan\n"
    "111,30,01/01/2024,2400,,,,\n"
    "222,150,01/01/2024,2400,,,,\n"
    "333,abc,01/01/2024,2411,,,,\n"
).encode("utf-8")


@pytest.fixture(autouse=True)
def fresh_rules():
    app.state.rule_set = RuleSet.default()
    yield


def _upload(path, content=CSV, name="selerix.csv"):
    return client.post(path, files={"file": (name, content, "text/csv")})


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"
    assert r.json()["rules"] == len(DEFAULT_RULES)


def test_list_rules_shows_lint_warnings():
    data = client.get("/rules").json()
    assert data["count"] == 27
    assert data["rules"][0]["rule"]["emp_amount"] == "65-65.5"
    assert data["rules"][3]["warnings"] == ["Amount range minimum exceeds maximum"]
    assert data["rules"][0]["warnings"] == []


def test_add_edit_remove_rule():
    r = client.post("/rules")
    assert r.status_code == 200
    assert r.json()["count"] == 28
    assert r.json()["rules"][-1]["rule"]["level"] == "1"

    r = client.patch("/rules/27", json={"field": "deduction", "value": "2400"})
    assert r.status_code == 200
    assert r.json()["errors"] == ["Carrier is required", "Coverage is required"]

    r = client.delete("/rules/27")
    assert r.json()["count"] == 27


def test_add_full_rule():
    rule = {"deduction": "9000", "emp_amount": "10", "carrier": "X", "coverage": "1", "level": "1", "plan": "P"}
    r = client.post("/rules", json=rule)
    assert r.json()["rules"][-1]["rule"] == rule


def test_rule_errors():
    assert client.delete("/rules/99").status_code == 404
    r = client.patch("/rules/0", json={"field": "nope", "value": "x"})
    assert r.status_code == 422
    assert r.json()["detail"]["kind"] == "RuleEditError"


def test_reset_rules():
    client.delete("/rules/0")
    assert client.post("/rules/reset").json()["count"] == 27


def test_inspect():
    r = _upload("/inspect")
    assert r.status_code == 200
    assert r.json()["message"] == "Loaded 3 rows with 2 unique deductions"
    assert r.json()["amounts"] == ["30", "150", "abc"]


def test_process_returns_csv():
    r = _upload("/process")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert 'filename="processed_selerix_data.csv"' in r.headers["content-disposition"]
    lines = r.text.split("\n")
    assert lines[0].startswith("SSN,Empe Amt/Pct Montly,Start Date,Deduction")
    assert lines[1] == "111,65.00,01/01/2024,2400,AETN,1,1,HLTH"
    assert lines[2] == "222,325.00,01/01/2024,2400,,,,"
    assert lines[3] == "333,NaN,01/01/2024,2411,,,,"


def test_preview_reports_counts_and_issues():
    r = _upload("/process/preview")
    data = r.json()
    assert data["rows"] == 3
    assert data["matched"] == 1
    assert data["unmatched"] == 2
    assert data["row_issues"][0]["kind"] == "AmountParseDefect"
    assert data["row_issues"][0]["row_number"] == 3
    assert data["preview"][0]["Hlth Ins Carrie"] == "AETN"


def test_process_refused_when_a_rule_is_invalid():
    client.patch("/rules/4", json={"field": "carrier", "value": ""})
    r = _upload("/process")
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["kind"] == "RuleValidationError"
    assert detail["rules"] == [5]
    assert "Rule 5: Carrier is required" in detail["message"]


def test_process_rejects_non_csv_and_bad_files():
    assert _upload("/process", name="data.txt").status_code == 422
    r = _upload("/process", content=b"SSN,Amount\n1,2\n")
    assert r.status_code == 422
    assert r.json()["detail"]["kind"] == "FileFormatError"


def test_process_csv_requires_bucket(monkeypatch):
    monkeypatch.setattr(main.settings, "gcs_bucket", None)
    r = client.post("/process-csv", json={"gcs_path": "raw/file.csv"})
    assert r.status_code == 503
