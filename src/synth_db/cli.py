"""synth-db CLI.

Seeds a schema with LLM-generated rows and prints the generated data as
INSERT statements.

Usage:
    synth-db --schema schema.sql
    synth-db --schema schema.sql --example-data-file data.sql --target out.sql
    synth-db --schema schema.sql --provider openai --target-row-numbers-file rows.yaml
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Optional

import click

from synth_db.config.settings import PROVIDERS, FillerConfig
from synth_db.config.targets import load_target_rows
from synth_db.engine.sql_engine import SqlEngine
from synth_db.errors import SynthDBError
from synth_db.export import render_statements, write_statements
from synth_db.generator.progress import ConsoleProgress, ProgressReporter
from synth_db.generator.table_filler import TableFiller
from synth_db.model.insert_statement import InsertStatement
from synth_db.model.schema import Schema
from synth_db.oracle.factory import create_generator

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--schema", "schema_path", required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Schema file of SQL CREATE TABLE statements.")
@click.option("--example-data-file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="INSERT statements to seed before generation; they also serve as prompt examples.")
@click.option("--target", "target_path", type=click.Path(dir_okay=False, path_type=Path),
              help="Output file for the generated statements (default: stdout).")
@click.option("--target-row-number", type=click.IntRange(min=0),
              help="Target row number for every table (default: 5).")
@click.option("--target-row-numbers-file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="YAML/JSON mapping or table=count file of per-table targets; other tables are left empty.")
@click.option("--provider", type=click.Choice(PROVIDERS, case_sensitive=False),
              help="Row generation backend (default: ollama). openai needs OPENAI_API_KEY.")
@click.option("--url", help="LLM URL (ollama: http://localhost:11434/api/chat, openai: https://api.openai.com/v1).")
@click.option("--model", help="Model name (ollama: llama3.1, openai: gpt-4o-mini).")
@click.option("--examples-per-table", type=click.IntRange(min=0),
              help="Example rows per table given to the model (default: 2).")
@click.option("--database-url", help="SQLAlchemy URL of the database to fill (default: in-memory SQLite).")
@click.option("--dialect", help="SQL dialect of the schema and example files (default: mysql).")
@click.option("--max-consecutive-failures", type=click.IntRange(min=1),
              help="Give up on a table after this many failed attempts in a row.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(
    schema_path: Path,
    example_data_file: Optional[Path],
    target_path: Optional[Path],
    target_row_number: Optional[int],
    target_row_numbers_file: Optional[Path],
    provider: Optional[str],
    url: Optional[str],
    model: Optional[str],
    examples_per_table: Optional[int],
    database_url: Optional[str],
    dialect: Optional[str],
    max_consecutive_failures: Optional[int],
    verbose: bool,
) -> None:
    """Fill the tables of SCHEMA with generated rows."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)

    try:
        config = _build_config(
            provider=provider,
            url=url,
            model=model,
            examples_per_table=examples_per_table,
            database_url=database_url,
            dialect=dialect,
            target_row_number=target_row_number,
            max_consecutive_failures=max_consecutive_failures,
        )
        targets = load_target_rows(target_row_numbers_file) if target_row_numbers_file else config.target_row_number
        generated = _run(config, schema_path, example_data_file, targets)
    except SynthDBError as e:
        raise click.ClickException(str(e)) from e

    if target_path is None:
        click.echo(render_statements(generated), nl=False)
        return

    try:
        write_statements(generated, target_path)
    except OSError as e:
        raise click.ClickException(f"Cannot write {target_path}: {e}") from e
    click.echo(f"Data stored in: {target_path}")


def _build_config(**overrides) -> FillerConfig:
    """Environment configuration with the given command-line values on top."""
    config = FillerConfig.from_env()
    values = {key: value for key, value in overrides.items() if value is not None}
    if "provider" in values:
        values["provider"] = values["provider"].lower()
    return dataclasses.replace(config, **values)


def _run(config: FillerConfig, schema_path: Path, example_data_file: Optional[Path], targets):
    schema = Schema.from_file(schema_path, dialect=config.dialect)
    generator = create_generator(config)
    progress = ConsoleProgress()

    with SqlEngine(config.database_url) as engine:
        filler = TableFiller(
            engine,
            generator,
            example_limit=config.examples_per_table,
            reporter=ProgressReporter(progress),
            max_consecutive_failures=config.max_consecutive_failures,
            dialect=config.dialect,
        )
        filler.create_schema(schema)

        if example_data_file is not None:
            examples = InsertStatement.from_file(schema, example_data_file, dialect=config.dialect)
            filler.insert_data(schema, examples)

        generated = filler.fill_schema(schema, targets)
        progress.finish()

    return generated


if __name__ == "__main__":
    main()
