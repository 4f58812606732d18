from __future__ import annotations

from laundry_system import sample_usage


def test_walkthrough_runs(capsys):
    sample_usage.main()

    out = capsys.readouterr().out
    assert "priced at 222.00" in out
    assert "Paid 222.00 via gcash" in out
    assert "Starch" in out
