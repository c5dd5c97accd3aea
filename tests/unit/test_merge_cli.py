from __future__ import annotations

import json
from pathlib import Path

import pytest

from shopscout import merge as merge_cli


def _write(path: Path, data) -> Path:
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture()
def runs(tmp_path: Path) -> Path:
    d = tmp_path / "runs"
    d.mkdir()
    _write(d / "a-first.json", {
        "Jane": {"instagram": "https://instagram.com/jane", "email": None,
                 "original_shop_link": "https://designbundles.net/jane"},
        "Bob": {"email": "bob@example.com", "original_shop_link": "https://designbundles.net/bob"},
    })
    _write(d / "b-second.json", {
        "Jane": {"instagram": "https://instagram.com/jane.new", "email": "jane@example.com",
                 "original_shop_link": "https://designbundles.net/jane?ref=2"},
        "Cleo": {"website": "https://cleo.example", "original_shop_link": "https://designbundles.net/cleo"},
    })
    (d / "notes.txt").write_text("not a snapshot", encoding="utf-8")
    return d


def test_merge_directory_first_value_wins(runs, tmp_path):
    out = tmp_path / "merged.json"
    assert merge_cli.main(["--input", str(runs), "--out", str(out)]) == 0

    data = json.loads(out.read_text(encoding="utf-8"))
    assert [r["name"] for r in data] == ["Jane", "Bob", "Cleo"]
    jane = data[0]
    assert list(jane)[0] == "name"
    assert jane["instagram"] == "https://instagram.com/jane"
    assert jane["email"] == "jane@example.com"
    assert jane["original_shop_link"] == "https://designbundles.net/jane"


def test_prefer_latest(runs, tmp_path):
    out = tmp_path / "merged.json"
    assert merge_cli.main(["-i", str(runs), "-o", str(out), "--prefer-latest"]) == 0
    jane = json.loads(out.read_text(encoding="utf-8"))[0]
    assert jane["instagram"] == "https://instagram.com/jane.new"
    assert jane["original_shop_link"] == "https://designbundles.net/jane"


def test_bad_files_are_skipped(runs, tmp_path, capsys):
    (runs / "c-broken.json").write_text("{not json", encoding="utf-8")
    _write(runs / "d-list.json", [1, 2, 3])
    out = tmp_path / "merged.json"
    assert merge_cli.main(["-i", str(runs), "-o", str(out)]) == 0
    err = capsys.readouterr().err
    assert "Invalid JSON" in err
    assert "d-list.json" in err
    assert len(json.loads(out.read_text(encoding="utf-8"))) == 3


def test_output_inside_input_dir_is_not_an_input(runs):
    out = runs / "merged.json"
    _write(out, {"Stale": {"original_shop_link": "https://x.example"}})
    assert merge_cli.main(["-i", str(runs), "-o", str(out)]) == 0
    names = [r["name"] for r in json.loads(out.read_text(encoding="utf-8"))]
    assert "Stale" not in names


def test_same_file_twice_counts_once(runs):
    files = merge_cli.collect_inputs([str(runs / "a-first.json"), str(runs), str(runs / "notes.txt")])
    assert [f.name for f in files] == ["a-first.json", "b-second.json"]


def test_no_inputs_exit_2(tmp_path, capsys):
    empty = tmp_path / "empty"
    empty.mkdir()
    assert merge_cli.main(["-i", str(empty), "-o", str(tmp_path / "m.json")]) == 2
    assert "no JSON files" in capsys.readouterr().err
