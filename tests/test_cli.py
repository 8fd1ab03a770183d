# tests/test_cli.py

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from kalvian_roots.cli.app import app

runner = CliRunner()


@pytest.fixture
def families_file(tmp_path, families_data):
    path = tmp_path / "families.json"
    path.write_text(json.dumps(families_data, ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture
def store_file(tmp_path):
    return tmp_path / "store.json"


def test_resolve_prints_family_citation(families_file, store_file) -> None:
    result = runner.invoke(app, ["resolve", str(families_file), "KORPI 6", "--store", str(store_file)])

    assert result.exit_code == 0, result.output
    assert "Information on pages 105, 106 includes:" in result.output
    assert "Children died as infants: 2" in result.output
    assert "invalid_reference" in result.output


def test_resolve_person_citation(families_file, store_file) -> None:
    result = runner.invoke(
        app,
        ["resolve", str(families_file), "KORPI 6", "--person", "maria", "--store", str(store_file)],
    )

    assert result.exit_code == 0, result.output
    assert "Additional Information:" in result.output
    assert "Maria's death date 1846 is on page 120" in result.output


def test_resolve_unknown_person(families_file, store_file) -> None:
    result = runner.invoke(
        app,
        ["resolve", str(families_file), "KORPI 6", "-p", "Heikki", "--store", str(store_file)],
    )
    assert result.exit_code == 1
    assert "no single person matches" in result.output


def test_resolve_json(families_file, store_file) -> None:
    result = runner.invoke(
        app, ["resolve", str(families_file), "KORPI 6", "--json", "--store", str(store_file)]
    )

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["main_family"] == "KORPI 6"
    assert data["as_parent_families"] == {"Maria": "ISO-PEITSO III 2"}
    assert sorted(data["families"]) == ["HYYPPÄ 3", "ISO-PEITSO III 2", "JÄNESNIEMI 5", "KORPI 5"]
    assert data["warnings"][0]["kind"] == "invalid_reference"


def test_resolve_missing_family_exits_with_error(families_file, store_file) -> None:
    result = runner.invoke(app, ["resolve", str(families_file), "KORPI 99", "--store", str(store_file)])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_names_learn_then_check(store_file) -> None:
    result = runner.invoke(app, ["names", "check", "Kaisa", "Katarina", "--store", str(store_file)])
    assert result.exit_code == 0, result.output
    assert "different" in result.output

    result = runner.invoke(app, ["names", "learn", "Kaisa", "Katarina", "--store", str(store_file)])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["names", "check", "kaisa", "KATARINA", "--store", str(store_file)])
    assert "equivalent" in result.output

    result = runner.invoke(app, ["names", "list", "--store", str(store_file)])
    assert result.exit_code == 0, result.output
    assert "katarina" in result.output
    assert "1 learned pair(s)" in result.output


def test_override_used_by_resolve(families_file, store_file) -> None:
    result = runner.invoke(
        app,
        [
            "override",
            "set",
            "korpi 6",
            "Jaakko--01.01.1788",
            "Jaakko, checked by hand",
            "--store",
            str(store_file),
        ],
    )
    assert result.exit_code == 0, result.output
    assert "KORPI 6" in result.output

    result = runner.invoke(app, ["override", "show", "KORPI 6", "--store", str(store_file)])
    assert "Jaakko, checked by hand" in result.output

    result = runner.invoke(
        app,
        ["resolve", str(families_file), "KORPI 6", "-p", "Jaakko", "--store", str(store_file)],
    )
    assert result.exit_code == 0, result.output
    assert "Jaakko, checked by hand" in result.output
