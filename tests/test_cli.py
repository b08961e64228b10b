from unittest.mock import AsyncMock

import pytest

import cli
from conftest import FakeChatService, FakeRuntime
from core.exceptions import MalformedResponseError


@pytest.fixture
def fake_runtime():
    """One runtime shared by successive CLI invocations."""
    return FakeRuntime(chat_service=FakeChatService("Air cooling [1]."))


def _run(argv, runtime):
    return cli.main(argv, runtime_factory=lambda: runtime)


@pytest.fixture
def claims_file(tmp_path):
    path = tmp_path / "US77.txt"
    path.write_text("a rotor blade with internal cooling channels\nand a gear train", encoding="utf-8")
    return path


class TestUsage:
    def test_no_command_should_exit_non_zero_with_usage(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main([])

        assert exc_info.value.code != 0
        assert "usage: patentrag" in capsys.readouterr().err

    def test_unknown_command_should_exit_non_zero(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["frobnicate"])

        assert exc_info.value.code != 0
        assert "usage:" in capsys.readouterr().err

    def test_ingest_without_patent_id_should_exit_non_zero(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["ingest", "doc.pdf"])

        assert exc_info.value.code != 0


class TestCommands:
    def test_ingest_embed_search_query_flow(self, fake_runtime, claims_file, capsys):
        assert _run(["ingest", str(claims_file), "US77"], fake_runtime) == 0
        assert "Ingested 1 chunks for patent US77" in capsys.readouterr().out

        assert _run(["embed"], fake_runtime) == 0
        assert "Embedded 1, skipped 0, failed 0 of 1 chunks" in capsys.readouterr().out

        assert _run(["search", "rotor blade", "3"], fake_runtime) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("US77 | US77-0 | ")
        assert lines[1] == "a rotor blade with internal cooling channels and a gear train"
        assert lines[2] == ""

        assert _run(["query", "How is the blade cooled?"], fake_runtime) == 0
        out = capsys.readouterr().out
        assert out.startswith("Air cooling [1].\n")
        assert "Sources:" in out
        assert "[1] US77-0" in out

    def test_missing_document_should_print_error_and_exit_1(self, fake_runtime, tmp_path, capsys):
        code = _run(["ingest", str(tmp_path / "nope.pdf"), "US1"], fake_runtime)

        assert code == 1
        assert "Error: Document not found" in capsys.readouterr().err

    def test_reingest_should_fail_with_duplicate_error(self, fake_runtime, claims_file, capsys):
        assert _run(["ingest", str(claims_file), "US77"], fake_runtime) == 0

        assert _run(["ingest", str(claims_file), "US77"], fake_runtime) == 1
        assert "duplicate_chunk" in capsys.readouterr().err

    def test_embed_with_failures_should_exit_1(self, claims_file, capsys):
        service = AsyncMock()
        service.model_name = "m"
        service.embed.side_effect = MalformedResponseError("no data")
        runtime = FakeRuntime(embedding_service=service)
        _run(["ingest", str(claims_file), "US77"], runtime)
        capsys.readouterr()

        assert _run(["embed"], runtime) == 1
        captured = capsys.readouterr()
        assert "Failed: US77-0" in captured.err
        assert "failed 1 of 1" in captured.out

    def test_search_on_empty_corpus_should_print_nothing(self, fake_runtime, capsys):
        assert _run(["search", "anything"], fake_runtime) == 0
        assert capsys.readouterr().out == ""

    def test_init_db_on_memory_store_should_succeed(self, fake_runtime, capsys):
        assert _run(["init-db"], fake_runtime) == 0
        assert "Database initialized" in capsys.readouterr().out
