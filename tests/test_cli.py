from __future__ import annotations

import json
from pathlib import Path

import pytest

from mplens.cli import main


def _w(p: Path, rel: str, content: str = "") -> Path:
    f = p / rel
    f.parent.mkdir(parents=True, exist_ok=True)
    f.write_text(content, encoding="utf-8")
    return f


def test_list_unused_text(sample_app: Path, capsys) -> None:
    code = main(["--project", str(sample_app), "list-unused"])

    assert code == 0
    assert capsys.readouterr().out.splitlines() == ["utils/orphan.js"]


def test_list_unused_json_to_file(sample_app: Path) -> None:
    out = sample_app / "report.json"

    code = main(["--project", str(sample_app), "list-unused", "--format", "json", "--output", str(out)])

    assert code == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["unusedFiles"] == ["utils/orphan.js"]
    assert data["summary"]["unused"] == 1


def test_essential_files_option(sample_app: Path, capsys) -> None:
    code = main(["--project", str(sample_app), "--essential-files", "utils/orphan.js", "list-unused"])

    assert code == 0
    assert capsys.readouterr().out.strip() == "No unused files found."


def test_config_file_and_cli_override(tmp_path: Path, capsys) -> None:
    _w(tmp_path, "mp/app.json", json.dumps({"pages": ["pages/a/a"]}))
    _w(tmp_path, "mp/pages/a/a.js", "import x from '@lib/x'")
    _w(tmp_path, "mp/lib/x.js", "")
    _w(tmp_path, "mp/lib/y.js", "")
    _w(tmp_path, "mplens.yaml", "miniapp_root: mp\naliases:\n  '@lib': mp/lib\n")

    assert main(["--project", str(tmp_path), "list-unused"]) == 0
    assert capsys.readouterr().out.splitlines() == ["mp/lib/y.js"]

    assert main(["--project", str(tmp_path), "--types", "wxml", "list-unused"]) == 0
    assert capsys.readouterr().out.strip() == "No unused files found."


def test_alias_option(tmp_path: Path, capsys) -> None:
    _w(tmp_path, "app.json", json.dumps({"pages": ["pages/a/a"]}))
    _w(tmp_path, "pages/a/a.js", "require('~shared/util')")
    _w(tmp_path, "shared/util.js", "")

    assert main(["--project", str(tmp_path), "--alias", "~shared=shared", "list-unused"]) == 0
    assert capsys.readouterr().out.strip() == "No unused files found."


def test_bad_alias_is_a_usage_error(tmp_path: Path) -> None:
    _w(tmp_path, "app.json", "{}")
    with pytest.raises(SystemExit) as exc:
        main(["--project", str(tmp_path), "--alias", "nope", "list-unused"])
    assert exc.value.code == 2


def test_missing_manifest_exits_one(tmp_path: Path, capsys) -> None:
    code = main(["--project", str(tmp_path), "list-unused"])

    assert code == 1
    assert "app.json not found" in capsys.readouterr().err


def test_graph_json_and_dot(sample_app: Path, tmp_path: Path) -> None:
    base = tmp_path / "out" / "structure"

    assert main(["--project", str(sample_app), "graph", "--format", "json", "--output", str(base)]) == 0
    data = json.loads(Path(f"{base}.json").read_text(encoding="utf-8"))
    assert any(n["id"] == "page:pages/index/index" for n in data["nodes"])

    assert main(["--project", str(sample_app), "graph", "--format", "dot", "--output", str(base)]) == 0
    assert Path(f"{base}.dot").is_file()


def test_init_writes_config_once(tmp_path: Path, capsys) -> None:
    assert main(["--project", str(tmp_path), "init"]) == 0
    assert (tmp_path / "mplens.yaml").is_file()

    assert main(["--project", str(tmp_path), "init"]) == 1
    assert "already exists" in capsys.readouterr().err
    assert main(["--project", str(tmp_path), "init", "--force"]) == 0


def test_no_command_prints_help(capsys) -> None:
    assert main([]) == 0
    assert "list-unused" in capsys.readouterr().out
