import json

from dexpara.config.composition import build_container
from dexpara.interface.cli import main as cli


def _write_input(tmp_path, de, rast):  # type: ignore[no-untyped-def]
    path = tmp_path / "input.json"
    path.write_text(json.dumps({"de": de, "rastreio": rast}), encoding="utf-8")
    return path


def test_parser_reads_weights():
    args = cli.build_parser().parse_args(["--input", "x.json", "--weights", "1,0,0,0", "--no-ai"])
    assert args.weights == [1.0, 0.0, 0.0, 0.0]
    assert args.no_ai is True
    assert args.min_score is None


def test_cli_prints_matches_and_writes_output(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("RANKING_ENABLED", "false")
    monkeypatch.setenv("TELEMETRY_ENABLED", "false")
    src = _write_input(
        tmp_path,
        [{"url": "/a", "slug": "blusa-azul", "meta_title": "Blusa Azul"}],
        [{"url": "/b", "slug": "blusa-azul", "meta_title": "Blusa Azul"}],
    )
    out = tmp_path / "out.json"

    code = cli.main(["--input", str(src), "--min-score", "0.5", "--output", str(out)])

    assert code == 0
    assert "/a -> /b" in capsys.readouterr().out
    rows = json.loads(out.read_text(encoding="utf-8"))
    assert rows[0]["de_url"] == "/a"
    assert rows[0]["match_url"] == "/b"


def test_cli_returns_1_on_empty_input(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("RANKING_ENABLED", "false")
    src = _write_input(tmp_path, [], [{"url": "/b"}])

    assert cli.main(["--input", str(src), "--no-ai"]) == 1
    assert "ValidationError" in capsys.readouterr().out


def test_cli_rejects_non_object_input(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("RANKING_ENABLED", "false")
    src = tmp_path / "input.json"
    src.write_text(json.dumps([{"url": "/a"}]), encoding="utf-8")

    assert cli.main(["--input", str(src)]) == 1
    assert "[ERROR] invalid input" in capsys.readouterr().out


def test_cli_leaves_no_progress_record_behind(tmp_path, monkeypatch):
    monkeypatch.setenv("RANKING_ENABLED", "false")
    monkeypatch.setenv("TELEMETRY_ENABLED", "false")
    built = []

    def capture_container():  # type: ignore[no-untyped-def]
        c = build_container()
        built.append(c)
        return c

    monkeypatch.setattr(cli, "build_container", capture_container)
    src = _write_input(tmp_path, [{"url": "/a", "slug": "blusa"}], [{"url": "/b", "slug": "blusa"}])

    assert cli.main(["--input", str(src), "--no-ai"]) == 0
    assert built[0].progress.active_sessions() == []
