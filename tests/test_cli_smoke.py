"""Smoke tests for the CLI entry point."""
from __future__ import annotations

import json

import pandas as pd
import pytest

from prospect_triage import __main__
from prospect_triage.cli import main

SEED_CSV = (
    "id,address,owner_name,listed_price,market_price_estimate,source,status,quality_score,created_at\n"
    "1,Av. Reforma 222,Lucía Méndez,850000,910000,mercadolibre,new,87,2024-03-02T09:00:00+00:00\n"
    "2,Calle Roble 14,,420000,,facebook,qualified,64,2024-03-01T09:00:00+00:00\n"
)


@pytest.fixture()
def seed_path(tmp_path):
    path = tmp_path / "seed.csv"
    path.write_text(SEED_CSV, encoding="utf-8")
    return path


def test_list_prints_counters_and_rows(seed_path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(["--seed", str(seed_path), "list"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Opportunities: 2" in out
    assert "Pending review: 1" in out
    assert "Av. Reforma 222" in out
    assert "US$ 850,000" in out
    assert "Showing 2 of 2 prospects" in out


def test_list_filters_by_status(seed_path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(["--seed", str(seed_path), "list", "--status", "qualified"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Calle Roble 14" in out
    assert "Av. Reforma 222" not in out
    assert "Showing 1 of 2 prospects" in out


def test_approve_reports_queued_outreach(seed_path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(["--seed", str(seed_path), "approve", "1"])

    assert exit_code == 0
    assert "whatsapp outreach queued" in capsys.readouterr().out


def test_action_on_unknown_prospect_fails(seed_path) -> None:
    assert main(["--seed", str(seed_path), "reject", "99"]) == 1


def test_action_on_triaged_prospect_fails(seed_path) -> None:
    assert main(["--seed", str(seed_path), "audit", "2"]) == 1


def test_export_writes_spreadsheet(seed_path, tmp_path) -> None:
    output_path = tmp_path / "export.csv"

    exit_code = main(["--seed", str(seed_path), "export", str(output_path), "--formatted-prices"])

    assert exit_code == 0
    exported = pd.read_csv(output_path)
    assert exported["id"].astype(str).tolist() == ["1", "2"]
    assert exported["listed_price"].tolist() == ["US$ 850,000", "US$ 420,000"]
    assert exported["owner_name"].tolist()[1] == "Unknown owner"


def test_watch_with_timeout_exits_cleanly(seed_path) -> None:
    assert main(["--seed", str(seed_path), "watch", "--seconds", "0"]) == 0


def test_config_file_drives_the_store(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps(
            {
                "store": {
                    "class": "prospect_triage.store.memory.InMemoryProspectStore",
                    "options": {"rows": [{"id": "7", "address": "Calle Siete"}]},
                },
                "outreach": {"channel": "email"},
            }
        ),
        encoding="utf-8",
    )

    exit_code = main(["--config", str(config_path), "approve", "7"])

    assert exit_code == 0
    assert "email outreach queued" in capsys.readouterr().out


def test_missing_config_file_is_a_configuration_error(tmp_path) -> None:
    assert main(["--config", str(tmp_path / "missing.yaml"), "list"]) == 2


def test_seed_requires_memory_store(tmp_path, seed_path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "store:\n  class: prospect_triage.store.supabase.SupabaseProspectStore\n",
        encoding="utf-8",
    )

    assert main(["--config", str(config_path), "--seed", str(seed_path), "list"]) == 2


def test_module_entry_point_delegates_to_cli(seed_path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = __main__.main(["--seed", str(seed_path), "list"])

    assert exit_code == 0
    assert "Showing 2 of 2 prospects" in capsys.readouterr().out


def test_module_entry_point_without_arguments_shows_help(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = __main__.main([])

    captured = capsys.readouterr()
    assert "python -m prospect_triage" in captured.out
    assert exit_code == 2


def test_list_rejects_unknown_status(seed_path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--seed", str(seed_path), "list", "--status", "qualifed"])

    assert excinfo.value.code == 2
