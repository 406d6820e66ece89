#!/usr/bin/env python3
"""Tests for the autogest CLI."""
from datetime import date

import pytest

import autogest
from autogest import (
    format_cost,
    format_deadline,
    format_km,
    main,
    make_alert_table,
    make_fleet_table,
    resolve_today,
    truncate,
)
from fleet import Category, Vehicle, aggregate, create_vehicle, get_vehicle

TODAY = date(2024, 6, 1)


@pytest.fixture
def fleet_dir(tmp_path):
    """Fleet with one expired inspection, one IUC due soon and one vehicle in order."""
    create_vehicle(
        tmp_path,
        Vehicle(
            id="clio",
            make="Renault",
            model="Clio",
            plate="11-AA-22",
            km=50000,
            next_inspection_date="2024-05-31",
            next_iuc_date="2024-06-11",
        ),
    )
    create_vehicle(
        tmp_path,
        Vehicle(
            id="zoe",
            make="Renault",
            model="Zoe",
            plate="33-BB-44",
            next_inspection_date="2024-07-31",
            next_iuc_date="2024-07-31",
            next_annual_review_date="2024-07-31",
        ),
    )
    return tmp_path


def run(fleet_dir, *args):
    return main([str(fleet_dir), *args])


# =============================================================================
# Formatting helpers
# =============================================================================


class TestFormatKm:
    """Tests for format_km."""

    def test_formats_number(self):
        assert format_km(124500) == "124,500 km"
        assert format_km(0) == "0 km"

    def test_none_returns_dash(self):
        assert format_km(None) == "-"


class TestFormatCost:
    """Tests for format_cost."""

    def test_formats_number(self):
        assert format_cost(320.5) == "320.50 €"
        assert format_cost(1200) == "1,200.00 €"

    def test_none_returns_dash(self):
        assert format_cost(None) == "-"


class TestFormatDeadline:
    """Tests for format_deadline."""

    def test_with_status(self):
        v = Vehicle(id="v", make="A", model="B", next_iuc_date="2024-06-11")
        assert format_deadline(v, Category.IUC, TODAY) == "2024-06-11 (Atenção)"

    def test_missing(self):
        v = Vehicle(id="v", make="A", model="B")
        assert format_deadline(v, Category.IUC, TODAY) == "-"


class TestTruncate:
    """Tests for truncate."""

    def test_short_text_unchanged(self):
        assert truncate("Óleo") == "Óleo"

    def test_long_text_truncated(self):
        assert truncate("x" * 40, max_len=10) == "xxxxxxx..."

    def test_empty_returns_dash(self):
        assert truncate(None) == "-"
        assert truncate("") == "-"


class TestResolveToday:
    """Tests for resolve_today."""

    def test_explicit(self):
        assert resolve_today("2024-06-01") == TODAY

    def test_default_is_system_date(self):
        assert resolve_today(None) == date.today()

    def test_invalid(self):
        with pytest.raises(ValueError, match="--today"):
            resolve_today("tomorrow")


class TestTables:
    """Tests for table builders."""

    def test_fleet_table(self, fleet_dir):
        rows = make_fleet_table([get_vehicle(fleet_dir, "clio")], TODAY)
        assert rows == [
            [
                "clio",
                "Renault Clio",
                "11-AA-22",
                "50,000 km",
                "2024-05-31 (Expirado)",
                "2024-06-11 (Atenção)",
                "-",
                "Expirado",
            ]
        ]

    def test_alert_table(self, fleet_dir):
        alerts = aggregate([get_vehicle(fleet_dir, "clio")], TODAY)
        assert make_alert_table(alerts) == [
            ["EXPIRADO", "Inspeção Expirada", "Renault Clio (11-AA-22)", "2024-05-31"],
            ["PENDENTE", "Pagamento IUC Brevemente", "Renault Clio (11-AA-22)", "2024-06-11"],
        ]


# =============================================================================
# Commands
# =============================================================================


class TestListCommand:
    """Tests for the list command."""

    def test_lists_vehicles(self, fleet_dir, capsys):
        assert run(fleet_dir, "list", "--today", "2024-06-01") == 0
        out = capsys.readouterr().out
        assert "Fleet: 2 vehicles (as of 2024-06-01)" in out
        assert "Renault Clio" in out
        assert "Renault Zoe" in out

    def test_empty_fleet(self, tmp_path, capsys):
        assert run(tmp_path / "empty", "list") == 0
        assert "No vehicles found." in capsys.readouterr().out

    def test_invalid_today(self, fleet_dir, capsys):
        assert run(fleet_dir, "list", "--today", "01-06-2024") == 1
        assert "Error: Invalid --today date" in capsys.readouterr().out


class TestAlertsCommand:
    """Tests for the alerts command."""

    def test_danger_first(self, fleet_dir, capsys):
        assert run(fleet_dir, "alerts", "--today", "2024-06-01") == 0
        out = capsys.readouterr().out
        assert "Alerts: 2" in out
        assert out.index("Inspeção Expirada") < out.index("Pagamento IUC Brevemente")

    def test_nothing_due(self, fleet_dir, capsys):
        assert run(fleet_dir, "alerts", "--today", "2020-01-01") == 0
        assert "All deadlines are up to date." in capsys.readouterr().out


class TestShowCommand:
    """Tests for the show command."""

    def test_shows_deadlines(self, fleet_dir, capsys):
        assert run(fleet_dir, "show", "clio", "--today", "2024-06-01") == 0
        out = capsys.readouterr().out
        assert "Vehicle: Renault Clio (11-AA-22)" in out
        assert "Inspeção Periódica (IPO)" in out
        assert "History: 0 records" in out

    def test_unknown_vehicle(self, fleet_dir, capsys):
        assert run(fleet_dir, "show", "ghost") == 1
        assert "Error: Vehicle 'ghost' not found" in capsys.readouterr().out


class TestAddCommand:
    """Tests for the add command."""

    def test_adds_vehicle(self, fleet_dir, capsys):
        code = run(
            fleet_dir,
            "add",
            "--id", "panda",
            "--make", "Fiat",
            "--model", "Panda",
            "--plate", "55-CC-66",
            "--iuc", "2024-09-30",
            "--last-annual-review", "2024-02-29",
        )
        assert code == 0
        assert "Vehicle saved." in capsys.readouterr().out
        vehicle = get_vehicle(fleet_dir, "panda")
        assert vehicle.next_iuc_date == "2024-09-30"
        assert vehicle.last_annual_review_date == "2024-02-29"
        assert vehicle.next_annual_review_date == "2025-02-28"

    def test_generated_id(self, tmp_path, capsys):
        assert run(tmp_path, "add", "--make", "Fiat", "--model", "Panda", "--plate", "55-CC-66") == 0
        files = list(tmp_path.glob("*.yaml"))
        assert len(files) == 1
        assert len(files[0].stem) == 12

    def test_dry_run(self, tmp_path, capsys):
        args = ["add", "--id", "panda", "--make", "Fiat", "--model", "Panda", "--plate", "X", "--dry-run"]
        assert run(tmp_path, *args) == 0
        assert "(dry run - no changes made)" in capsys.readouterr().out
        assert list(tmp_path.glob("*.yaml")) == []

    def test_invalid_date(self, tmp_path, capsys):
        args = ["add", "--make", "Fiat", "--model", "Panda", "--plate", "X", "--inspection", "30/09/2024"]
        assert run(tmp_path, *args) == 1
        assert "Invalid date '30/09/2024' for --inspection" in capsys.readouterr().out
        assert list(tmp_path.glob("*.yaml")) == []

    def test_duplicate_id(self, fleet_dir, capsys):
        assert run(fleet_dir, "add", "--id", "clio", "--make", "A", "--model", "B", "--plate", "X") == 1
        assert "already exists" in capsys.readouterr().out


class TestEditCommand:
    """Tests for the edit command."""

    def test_changes_only_given_fields(self, fleet_dir, capsys):
        assert run(fleet_dir, "edit", "clio", "--km", "51000", "--status", "maintenance", "--iuc", "2025-06-11") == 0
        assert "Vehicle updated." in capsys.readouterr().out
        vehicle = get_vehicle(fleet_dir, "clio")
        assert vehicle.km == 51000
        assert vehicle.status == "maintenance"
        assert vehicle.next_iuc_date == "2025-06-11"
        assert vehicle.next_inspection_date == "2024-05-31"
        assert vehicle.plate == "11-AA-22"

    def test_keeps_history(self, fleet_dir, capsys):
        run(fleet_dir, "log", "clio", "--type", "IPO", "--service", "Inspeção", "--date", "2024-05-30")
        assert run(fleet_dir, "edit", "clio", "--color", "Azul") == 0
        vehicle = get_vehicle(fleet_dir, "clio")
        assert vehicle.color == "Azul"
        assert len(vehicle.history) == 1

    def test_derives_next_annual_review(self, fleet_dir, capsys):
        assert run(fleet_dir, "edit", "clio", "--last-annual-review", "2024-05-15") == 0
        assert get_vehicle(fleet_dir, "clio").next_annual_review_date == "2025-05-15"

    def test_nothing_to_change(self, fleet_dir, capsys):
        assert run(fleet_dir, "edit", "clio", "--make", "Renault") == 0
        assert "Nothing to change." in capsys.readouterr().out

    def test_dry_run(self, fleet_dir, capsys):
        assert run(fleet_dir, "edit", "clio", "--km", "99999", "--dry-run") == 0
        assert get_vehicle(fleet_dir, "clio").km == 50000

    def test_invalid_date(self, fleet_dir, capsys):
        assert run(fleet_dir, "edit", "clio", "--inspection", "20250531") == 1
        assert "Invalid date '20250531' for --inspection" in capsys.readouterr().out
        assert get_vehicle(fleet_dir, "clio").next_inspection_date == "2024-05-31"

    def test_invalid_status(self, fleet_dir, capsys):
        with pytest.raises(SystemExit):
            run(fleet_dir, "edit", "clio", "--status", "sold")

    def test_negative_km(self, fleet_dir, capsys):
        assert run(fleet_dir, "edit", "clio", "--km", "-5") == 1
        assert get_vehicle(fleet_dir, "clio").km == 50000

    def test_unknown_vehicle(self, fleet_dir, capsys):
        assert run(fleet_dir, "edit", "ghost", "--km", "1") == 1


class TestRenewCommand:
    """Tests for the renew command."""

    def test_renews_deadline(self, fleet_dir, capsys):
        assert run(fleet_dir, "renew", "clio", "inspection", "2025-05-31") == 0
        out = capsys.readouterr().out
        assert "2024-05-31 -> 2025-05-31" in out
        assert get_vehicle(fleet_dir, "clio").next_inspection_date == "2025-05-31"

    def test_clears_alert(self, fleet_dir, capsys):
        run(fleet_dir, "renew", "clio", "inspection", "2025-05-31")
        capsys.readouterr()
        run(fleet_dir, "alerts", "--today", "2024-06-01")
        out = capsys.readouterr().out
        assert "Alerts: 1" in out
        assert "Inspeção Expirada" not in out

    def test_dry_run(self, fleet_dir, capsys):
        assert run(fleet_dir, "renew", "clio", "iuc", "2025-06-11", "--dry-run") == 0
        assert get_vehicle(fleet_dir, "clio").next_iuc_date == "2024-06-11"

    def test_unknown_category(self, fleet_dir, capsys):
        assert run(fleet_dir, "renew", "clio", "oil", "2025-06-11") == 1
        assert "Unknown deadline category 'oil'" in capsys.readouterr().out

    def test_invalid_date(self, fleet_dir, capsys):
        assert run(fleet_dir, "renew", "clio", "iuc", "soon") == 1
        assert get_vehicle(fleet_dir, "clio").next_iuc_date == "2024-06-11"


class TestLogCommand:
    """Tests for the log command."""

    def test_adds_record(self, fleet_dir, capsys):
        code = run(
            fleet_dir, "log", "clio",
            "--type", "Revisão",
            "--service", "Óleo e filtros",
            "--date", "2024-05-20",
            "--garage", "Auto Sul",
            "--cost", "150",
        )
        assert code == 0
        (record,) = get_vehicle(fleet_dir, "clio").history
        assert record.date == "2024-05-20"
        assert record.km == 50000
        assert record.cost == 150.0

    def test_raises_odometer_and_sets_next_service(self, fleet_dir, capsys):
        code = run(
            fleet_dir, "log", "clio",
            "--type", "Revisão",
            "--service", "Óleo",
            "--date", "2024-05-20",
            "--km", "52000",
            "--next-service-km", "67000",
        )
        assert code == 0
        assert "Odometer: 50,000 km -> 52,000 km" in capsys.readouterr().out
        vehicle = get_vehicle(fleet_dir, "clio")
        assert vehicle.km == 52000
        assert vehicle.next_service_km == 67000

    def test_date_defaults_to_today_flag(self, fleet_dir, capsys):
        assert run(fleet_dir, "log", "clio", "--type", "IPO", "--service", "x", "--today", "2024-06-01") == 0
        (record,) = get_vehicle(fleet_dir, "clio").history
        assert record.date == "2024-06-01"

    def test_dry_run(self, fleet_dir, capsys):
        assert run(fleet_dir, "log", "clio", "--type", "IPO", "--service", "x", "--dry-run") == 0
        assert get_vehicle(fleet_dir, "clio").history == []

    def test_invalid_date(self, fleet_dir, capsys):
        assert run(fleet_dir, "log", "clio", "--type", "IPO", "--service", "x", "--date", "ontem") == 1
        assert capsys.readouterr().out.startswith("Error:")


class TestDeleteCommand:
    """Tests for the delete command."""

    def test_deletes(self, fleet_dir, capsys):
        assert run(fleet_dir, "delete", "zoe") == 0
        assert not (fleet_dir / "zoe.yaml").exists()

    def test_dry_run(self, fleet_dir, capsys):
        assert run(fleet_dir, "delete", "zoe", "--dry-run") == 0
        assert (fleet_dir / "zoe.yaml").exists()


class TestNotifyCommand:
    """Tests for the notify command."""

    def test_dry_run_prints_digest(self, fleet_dir, capsys):
        assert run(fleet_dir, "notify", "--today", "2024-06-01", "--dry-run") == 0
        out = capsys.readouterr().out
        assert "Subject: ⚠️ Alerta AutoGest: 2 eventos próximos ou em atraso" in out
        assert "🚗 Renault Clio (11-AA-22): Inspeção Periódica (IPO) em 2024-05-31" in out
        assert "Zoe" not in out

    def test_impossible_date_in_one_file_does_not_stop_digest(self, fleet_dir, capsys):
        (fleet_dir / "punto.yaml").write_text(
            "id: punto\nmake: Fiat\nmodel: Punto\nplate: 77-DD-88\n"
            "nextInspectionDate: 2024-02-30\nnextIucDate: 2024-06-05\n"
        )
        assert run(fleet_dir, "notify", "--today", "2024-06-01", "--dry-run") == 0
        out = capsys.readouterr().out
        assert "3 eventos" in out
        assert "Fiat Punto (77-DD-88): Pagamento de Selo (IUC) em 2024-06-05" in out
        assert "Fiat Punto (77-DD-88): Inspeção" not in out

    def test_wider_horizon(self, fleet_dir, capsys):
        assert run(fleet_dir, "notify", "--today", "2024-06-01", "--horizon", "60", "--dry-run") == 0
        assert "5 eventos" in capsys.readouterr().out

    def test_nothing_due_sends_nothing(self, fleet_dir, monkeypatch, capsys):
        sent = []
        monkeypatch.setattr(autogest, "send_digest", lambda *a, **kw: sent.append(a))
        assert run(fleet_dir, "notify", "--today", "2020-01-01") == 0
        assert sent == []

    def test_sends_digest(self, fleet_dir, monkeypatch, capsys):
        monkeypatch.setenv("MAIL_TO", "fleet@example.com")
        monkeypatch.setenv("MAIL_USER", "bot@example.com")
        sent = []
        monkeypatch.setattr(autogest, "send_digest", lambda message, settings: sent.append((message, settings)))

        assert run(fleet_dir, "notify", "--today", "2024-06-01") == 0

        (message, settings), = sent
        assert settings.recipient == "fleet@example.com"
        assert "2 eventos" in message["Subject"]
        assert "Digest sent to fleet@example.com: 2 events" in capsys.readouterr().out

    def test_send_failure(self, fleet_dir, monkeypatch):
        monkeypatch.setenv("MAIL_TO", "fleet@example.com")
        monkeypatch.setenv("MAIL_USER", "bot@example.com")

        def fail(message, settings):
            raise ConnectionRefusedError("smtp down")

        monkeypatch.setattr(autogest, "send_digest", fail)
        assert run(fleet_dir, "notify", "--today", "2024-06-01") == 1

    def test_missing_mail_config(self, fleet_dir, monkeypatch, capsys):
        monkeypatch.delenv("MAIL_TO", raising=False)
        monkeypatch.setenv("MAIL_USER", "bot@example.com")
        assert run(fleet_dir, "notify", "--today", "2024-06-01") == 1
        assert "Error: MAIL_TO is not set" in capsys.readouterr().out

    def test_negative_horizon(self, fleet_dir, capsys):
        assert run(fleet_dir, "notify", "--horizon", "-1", "--dry-run") == 1
        assert "horizon_days must not be negative" in capsys.readouterr().out
