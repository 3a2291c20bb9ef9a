import logging

import pytest
import requests

import cli
from conftest import FIVE, FakeSession, write_payload
from dexfetch.configs.constants import Constants
from dexfetch.errors import DependencyMissingError
from dexfetch.scraper.base import PokemonFetcher


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def offline(monkeypatch):
    """Every PokemonFetcher built by the CLI talks to a FakeSession."""
    session = FakeSession()
    monkeypatch.setattr(PokemonFetcher, "_build_session", lambda self: session)
    return session


def run(tmp_path, *argv):
    return cli.main(["--output-dir", str(tmp_path / "out"), *argv])


def test_help_exits_zero(capsys):
    with pytest.raises(SystemExit) as info:
        cli.main(["--help"])
    assert info.value.code == 0
    assert "usage: dexfetch" in capsys.readouterr().out


def test_unknown_flag_exits_one(capsys):
    with pytest.raises(SystemExit) as info:
        cli.main(["fetch", "--bogus"])
    assert info.value.code == 1
    assert "usage:" in capsys.readouterr().err


@pytest.mark.parametrize("jobs", ["0", "11", "three"])
def test_jobs_out_of_range_exits_one(jobs):
    with pytest.raises(SystemExit) as info:
        cli.main(["parallel", "--jobs", jobs])
    assert info.value.code == 1


def test_modes_are_mutually_exclusive():
    with pytest.raises(SystemExit) as info:
        cli.main(["fetch", "--stats-only", "--cleanup-only"])
    assert info.value.code == 1


def test_missing_dependency_aborts(tmp_path, monkeypatch, offline):
    def fail():
        raise DependencyMissingError(["requests"])

    monkeypatch.setattr("dexfetch.utils.dependencies.check_dependencies", fail)

    assert run(tmp_path, "fetch") == 1
    assert offline.calls == []


def test_sequential_fetch_end_to_end(tmp_path, offline, capsys):
    assert run(tmp_path, "fetch", "--delay", "0") == 0

    out_dir = tmp_path / "out"
    assert sorted(offline.calls) == sorted(FIVE)
    for item in FIVE:
        assert (out_dir / f"{item}.json").is_file()
    csv_text = (out_dir / Constants.CSV_REPORT).read_text(encoding="utf-8")
    assert csv_text.splitlines()[0] == "Name,Height (m),Weight (kg)"
    assert len(csv_text.splitlines()) == 6
    assert (out_dir / Constants.ERROR_LOG).read_text(encoding="utf-8") == ""
    assert "Successful      : 5" in (out_dir / Constants.SUMMARY_REPORT).read_text(encoding="utf-8")
    assert "Records: 5" in capsys.readouterr().out


def test_parallel_fetch_with_threads(tmp_path, offline):
    assert run(tmp_path, "parallel", "--threads", "-j", "2") == 0
    assert sorted(offline.calls) == sorted(FIVE)


def test_failed_item_sets_exit_status(tmp_path, offline):
    offline.script["venusaur"] = [requests.ConnectionError("connection refused")]

    assert run(tmp_path, "fetch", "--delay", "0", "--retries", "2", "--retry-delay", "0") == 1
    errors = (tmp_path / "out" / Constants.ERROR_LOG).read_text(encoding="utf-8")
    assert errors.count("venusaur") >= 2


def test_validate_only(tmp_path, offline, capsys):
    out_dir = tmp_path / "out"
    assert run(tmp_path, "fetch", "--validate-only") == 1

    for item in FIVE:
        write_payload(out_dir / f"{item}.json", item)
    assert run(tmp_path, "fetch", "--validate-only") == 0
    assert "5/5 outputs valid" in capsys.readouterr().out
    assert offline.calls == []


def test_stats_only(tmp_path, offline, capsys):
    out_dir = tmp_path / "out"
    for item in ("bulbasaur", "charmander"):
        write_payload(out_dir / f"{item}.json", item)

    assert run(tmp_path, "fetch", "--stats-only") == 0

    out = capsys.readouterr().out
    assert "Records: 2" in out
    assert "Weight (kg): min 7, max 9" in out
    assert offline.calls == []


def test_cleanup_only(tmp_path, offline):
    out_dir = tmp_path / "out"
    for item in FIVE:
        write_payload(out_dir / f"{item}.json", item)
    (out_dir / Constants.CSV_REPORT).write_text("x", encoding="utf-8")
    (out_dir / ".dexfetch-stale").mkdir()
    (out_dir / ".dexfetch-stale" / "bulbasaur.1.tmp").write_text("x", encoding="utf-8")
    (out_dir / "keep.txt").write_text("mine", encoding="utf-8")

    assert run(tmp_path, "parallel", "--cleanup-only") == 0

    assert [p.name for p in out_dir.iterdir()] == ["keep.txt"]


def test_describe_prints_sentence(tmp_path, offline, capsys):
    assert run(tmp_path, "describe", "Pikachu") == 0
    assert capsys.readouterr().out.strip().endswith(
        "Pikachu is of type Electric, weighs 6 kg, and is 0.4 m tall."
    )


def test_describe_unknown_pokemon(tmp_path, offline):
    assert run(tmp_path, "describe", "invalidpokemon123") == 1
    assert offline.calls == ["invalidpokemon123"]


def test_describe_failure_reaches_error_log(tmp_path, offline):
    assert run(tmp_path, "describe", "invalidpokemon123") == 1

    lines = (tmp_path / "out" / Constants.ERROR_LOG).read_text(encoding="utf-8").splitlines()
    assert any("not found" in line for line in lines)
    assert any("Could not fetch invalidpokemon123" in line for line in lines)
    assert all(" ERROR: " in line for line in lines)


def test_describe_rejects_bad_identifier(tmp_path, offline):
    assert run(tmp_path, "describe", "mr mime") == 1
    assert offline.calls == []


def test_report_command(tmp_path, offline, capsys):
    write_payload(tmp_path / "out" / "bulbasaur.json", "bulbasaur")

    assert run(tmp_path, "report") == 0

    out = capsys.readouterr().out
    assert "Bulbasaur is of type Grass/Poison, weighs 7 kg, and is 0.7 m tall." in out
    assert (tmp_path / "out" / Constants.CSV_REPORT).is_file()


def test_report_without_records(tmp_path, offline):
    assert run(tmp_path, "report") == 1
