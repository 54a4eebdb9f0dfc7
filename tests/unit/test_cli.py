"""Unit tests for the Typer CLI."""

import pytest
from typer.testing import CliRunner

from notesqa import __version__
from notesqa.cli import app
from notesqa.tenant import derive_tenant_key

runner = CliRunner()


@pytest.fixture
def cli_service(service, monkeypatch):
    """Route CLI commands to the test service."""
    monkeypatch.setattr("notesqa.retrieval.resources.get_notes_service", lambda: service)
    return service


@pytest.mark.unit
class TestCli:
    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert f"notesqa v{__version__}" in result.output

    def test_tenant(self):
        result = runner.invoke(app, ["tenant", "device-1"])

        assert result.exit_code == 0
        assert derive_tenant_key("device-1") in result.output

    def test_ingest_files(self, cli_service, store, notes_dir):
        result = runner.invoke(
            app,
            [
                "ingest",
                str(notes_dir / "groceries.txt"),
                str(notes_dir / "calendar.md"),
                "--client-id",
                "device-1",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "processed" in result.output
        documents = store.list_documents(derive_tenant_key("device-1"))
        assert sorted(d.file_name for d in documents) == ["calendar.md", "groceries.txt"]
        assert {d.mime_type for d in documents} == {"text/plain", "text/markdown"}

    def test_ingest_missing_file(self, cli_service, tmp_path):
        result = runner.invoke(app, ["ingest", str(tmp_path / "nope.txt"), "-c", "device-1"])

        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_ingest_empty_client_id_fails(self, cli_service, store, notes_dir):
        result = runner.invoke(app, ["ingest", str(notes_dir / "groceries.txt"), "-c", ""])

        assert result.exit_code == 1
        assert "Could not ingest" in result.output
        assert store.document_count == 0

    def test_ask(self, cli_service, notes_dir, fake_llm):
        runner.invoke(app, ["ingest", str(notes_dir / "groceries.txt"), "-c", "device-1"])

        result = runner.invoke(app, ["ask", "What do I need to buy?", "-c", "device-1"])

        assert result.exit_code == 0, result.output
        assert fake_llm.answer in result.output
        assert "groceries.txt" in result.output

    def test_ask_blank_question_fails(self, cli_service):
        result = runner.invoke(app, ["ask", "   ", "-c", "device-1"])

        assert result.exit_code == 1
        assert "Could not answer" in result.output
