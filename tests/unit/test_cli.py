"""
Tests unitarios para el CLI (códigos de salida y selección de categorías).

Se mockean settings, base de datos y orquestador: no hay red ni PostgreSQL.
"""
from unittest.mock import Mock, patch

import psycopg
import pytest

from billing_sync import cli
from billing_sync.application.dto.sync_dto import PassReportDTO
from billing_sync.shared.exceptions.sync import (
    PassAbortedError,
    RemoteApiError,
    StoreUnavailableError,
    SyncConfigError,
)


def _report(category: str, status: str = "success") -> PassReportDTO:
    return PassReportDTO(category=category, mode="incremental", status=status)


class TestCli:
    @pytest.fixture
    def settings(self):
        settings = Mock()
        settings.effective_conninfo = "host=db"
        settings.INVOICE_STATUS_FILTER = ""
        return settings

    @pytest.fixture
    def orchestrator(self):
        return Mock()

    @pytest.fixture
    def patched(self, settings, orchestrator):
        with patch.object(cli, "load_dotenv"), \
                patch.object(cli, "configure_logging"), \
                patch.object(cli, "load_settings", return_value=settings), \
                patch.object(cli, "PostgresDatabase") as mock_db, \
                patch.object(cli, "build_orchestrator", return_value=orchestrator):
            yield mock_db

    def test_all_categories_in_order(self, patched, orchestrator):
        """Verifica que 'all' corre customers y luego invoices con opciones por defecto."""
        orchestrator.run_pass.side_effect = [_report("customers"), _report("invoices")]

        assert cli.main([]) == 0

        categories = [c.args[0].name for c in orchestrator.run_pass.call_args_list]
        assert categories == ["customers", "invoices"]
        options = orchestrator.run_pass.call_args.args[1]
        assert options.windowed is True
        assert options.include_orphan_sweep is True

    def test_flags_map_to_pass_options(self, patched, orchestrator):
        orchestrator.run_pass.return_value = _report("invoices")

        assert cli.main(["--category", "invoices", "--full-resync", "--skip-orphan-sweep"]) == 0

        orchestrator.run_pass.assert_called_once()
        category, options = orchestrator.run_pass.call_args.args
        assert category.name == "invoices"
        assert options.windowed is False
        assert options.include_orphan_sweep is False

    def test_failed_category_does_not_stop_next(self, patched, orchestrator):
        """Verifica que una categoría abortada devuelve 1 pero la siguiente igual corre."""
        orchestrator.run_pass.side_effect = [
            PassAbortedError("customers", RemoteApiError("ledger 500", status_code=500)),
            _report("invoices"),
        ]

        assert cli.main([]) == 1
        assert orchestrator.run_pass.call_count == 2

    def test_skipped_pass_exits_zero(self, patched, orchestrator):
        orchestrator.run_pass.return_value = _report("customers", status="skipped")

        assert cli.main(["--category", "customers"]) == 0

    def test_store_unreachable_is_startup_failure(self, patched, orchestrator):
        patched.return_value.ping.side_effect = StoreUnavailableError("connection refused")

        assert cli.main([]) == 2
        orchestrator.run_pass.assert_not_called()

    def test_config_error_is_startup_failure(self):
        with patch.object(cli, "load_dotenv"), \
                patch.object(cli, "load_settings", side_effect=SyncConfigError("Faltan variables")), \
                patch.object(cli, "build_orchestrator") as mock_build:
            assert cli.main([]) == 2
            mock_build.assert_not_called()

    def test_invalid_category_is_rejected(self):
        with pytest.raises(SystemExit):
            cli.main(["--category", "refunds"])

    def test_store_lost_during_category_runs_next_and_exits_one(self, patched, orchestrator):
        """Verifica que un store caído en una categoría devuelve el exit_code de la corrida y sigue."""
        orchestrator.run_pass.side_effect = [
            PassAbortedError("customers", psycopg.OperationalError("connection refused")),
            _report("invoices"),
        ]

        assert cli.main([]) == 1
        assert orchestrator.run_pass.call_count == 2
