"""
Smoke tests for scripts/preview_schedule.py.

The script is run in a subprocess so its logging setup does not leak into
the rest of the suite.
"""

import json
import subprocess
import sys
from pathlib import Path

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "preview_schedule.py"


def run_preview(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, str(SCRIPT), *args],
        capture_output=True,
        text=True,
        timeout=60,
    )


class TestPreviewSchedule:
    def test_six_months_with_payment_and_late_fees(self):
        result = run_preview(
            "--start", "2024-01-01", "--duration", "6", "--unit", "months",
            "--amount", "300", "--pay", "450", "--pay-date", "2024-01-15",
            "--as-of", "2024-03-10",
        )
        assert result.returncode == 0, result.stderr

        output = json.loads(result.stdout)
        assert output["agreement"]["end_date"] == "2024-06-30"
        schedules = output["schedules"]
        assert len(schedules) == 6
        assert [s["status"] for s in schedules[:4]] == ["paid", "partial", "overdue", "pending"]
        assert schedules[1]["late_fee"] == "15.00"
        assert schedules[2]["late_fee"] == "15.00"
        assert output["payment"]["allocated_amount"] == "450.00"
        assert output["summary"]["total_outstanding"] == "1350.00"

    def test_fee_overrides(self):
        result = run_preview(
            "--start", "2024-01-01", "--end", "2024-01-31", "--amount", "1000",
            "--as-of", "2024-01-31", "--fee-value", "10", "--max-fee", "50",
        )
        assert result.returncode == 0, result.stderr

        output = json.loads(result.stdout)
        assert output["late_fee_policy"]["max_amount"] == "50"
        assert output["schedules"][0]["late_fee"] == "50.00"

    def test_invalid_agreement_exits_2(self):
        result = run_preview("--start", "2024-03-01", "--end", "2024-02-01", "--amount", "300")
        assert result.returncode == 2
        assert "INVALID_AGREEMENT" in result.stderr
