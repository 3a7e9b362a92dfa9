"""Tests for the synth-db command line."""

import pytest
from click.testing import CliRunner

from synth_db import cli
from synth_db.oracle.base import RowGenerator

SCHEMA = """
CREATE TABLE department (id INT PRIMARY KEY AUTO_INCREMENT, name VARCHAR(50) UNIQUE);
CREATE TABLE employee (
    id INT PRIMARY KEY AUTO_INCREMENT,
    name VARCHAR(50),
    department_id INT REFERENCES department(id)
);
"""


class CountingGenerator(RowGenerator):
    """Writes one uniquely named row per call."""

    def __init__(self):
        self.calls = 0

    def generate(self, table, row_count, example_rows, dependency_rows):
        self.calls += 1
        if table.name == "department":
            return f"INSERT INTO department (name) VALUES ('Department {self.calls}')"
        return f"INSERT INTO employee (name, department_id) VALUES ('Employee {self.calls}', 1)"


@pytest.fixture
def schema_file(tmp_path):
    path = tmp_path / "schema.sql"
    path.write_text(SCHEMA, encoding="utf-8")
    return path


@pytest.fixture
def generator(monkeypatch):
    fake = CountingGenerator()
    monkeypatch.setattr(cli, "create_generator", lambda config: fake)
    for name in ("SYNTH_DB_PROVIDER", "SYNTH_DB_DATABASE_URL", "SYNTH_DB_DIALECT", "OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    return fake


class TestCli:
    """Tests for the synth-db command."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_prints_generated_data(self, schema_file, generator):
        result = self.runner.invoke(cli.main, ["--schema", str(schema_file), "--target-row-number", "2"])

        assert result.exit_code == 0, result.output
        assert "-- Table data: department" in result.output
        assert "-- Table data: employee" in result.output
        assert "INSERT INTO department (name) VALUES \n\t('Department 1'),\n\t('Department 2');" in result.output
        assert generator.calls == 4

    def test_writes_target_file(self, schema_file, generator, tmp_path):
        target = tmp_path / "out.sql"
        result = self.runner.invoke(
            cli.main, ["--schema", str(schema_file), "--target-row-number", "1", "--target", str(target)]
        )

        assert result.exit_code == 0, result.output
        assert f"Data stored in: {target}" in result.output
        text = target.read_text(encoding="utf-8")
        assert text.startswith("-- ==========================\n-- Table data: department\n")

    def test_target_row_numbers_file(self, schema_file, generator, tmp_path):
        targets = tmp_path / "targets.yaml"
        targets.write_text("department: 3\n", encoding="utf-8")
        result = self.runner.invoke(
            cli.main, ["--schema", str(schema_file), "--target-row-numbers-file", str(targets)]
        )

        assert result.exit_code == 0, result.output
        assert "-- Table data: department" in result.output
        assert "-- Table data: employee" not in result.output
        assert generator.calls == 3

    def test_example_data_is_seeded(self, schema_file, generator, tmp_path):
        examples = tmp_path / "examples.sql"
        examples.write_text("INSERT INTO department (name) VALUES ('Sales'), ('HR');\n", encoding="utf-8")
        result = self.runner.invoke(
            cli.main,
            ["--schema", str(schema_file), "--example-data-file", str(examples), "--target-row-number", "2"],
        )

        assert result.exit_code == 0, result.output
        # department already holds its two rows, only employees are generated
        assert "-- Table data: department" not in result.output
        assert generator.calls == 2

    def test_invalid_schema_fails(self, tmp_path, generator):
        path = tmp_path / "schema.sql"
        path.write_text("SELECT 1;", encoding="utf-8")
        result = self.runner.invoke(cli.main, ["--schema", str(path)])

        assert result.exit_code == 1
        assert "No CREATE TABLE" in result.output

    def test_missing_openai_key_fails(self, schema_file, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        result = self.runner.invoke(cli.main, ["--schema", str(schema_file), "--provider", "openai"])

        assert result.exit_code == 1
        assert "OPENAI_API_KEY" in result.output

    def test_schema_is_required(self):
        result = self.runner.invoke(cli.main, [])
        assert result.exit_code == 2
