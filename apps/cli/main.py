"""Typer CLI entrypoint for reformation."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated, Any, Literal, cast

import typer

from apps.cli.io import (
    dump_json_line,
    record_to_payload,
    write_report_json_atomic,
    write_source_atomic,
)
from reformation.codegen import generate_module
from reformation.config import ReformationConfig, load_config
from reformation.errors import CompileError, NoRegexMatch, ReconstructionError
from reformation.record import compiled_schema
from reformation.schema_file import build_records, load_schema_file

app = typer.Typer(help="Template-driven record parser CLI", rich_markup_mode=None)
MatchModeOption = Literal["full", "search"]

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_UNPARSED = 2
EXIT_COMPILE = 3


@app.callback()
def cli_callback() -> None:
    """CLI root callback to keep subcommands explicit."""


@app.command("parse")
def parse_command(
    schema: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    record: Annotated[str, typer.Option(...)],
    inputs: Annotated[
        list[str] | None, typer.Argument(help="Strings to parse; stdin lines if omitted.")
    ] = None,
    config: Annotated[Path | None, typer.Option(exists=True, dir_okay=False)] = None,
    mode: Annotated[
        str | None,
        typer.Option(help="Default match mode for records that do not set one: full or search."),
    ] = None,
    report: Annotated[
        Path | None,
        typer.Option("--report", help="Write a JSON summary of parsed/failed counts."),
    ] = None,
) -> None:
    """Parse each input with one record of a schema file, one JSON line per input."""

    records = _load_records_or_exit(schema, config, mode)
    record_type = records.get(record)
    if record_type is None:
        typer.echo(f"ERROR: unknown record: {record} (known: {', '.join(records) or 'none'})")
        raise typer.Exit(code=EXIT_ERROR)

    lines = inputs if inputs else sys.stdin.read().splitlines()
    parsed_count = 0
    failures: dict[str, int] = {}

    for text in lines:
        payload: dict[str, Any] = {"input": text}
        try:
            value = record_type.parse(text)  # type: ignore[attr-defined]
        except NoRegexMatch as exc:
            payload.update(ok=False, error="no_match", message=str(exc))
        except ReconstructionError as exc:
            payload.update(ok=False, error="reconstruction", field=exc.field, message=str(exc))
        else:
            payload.update(ok=True, record=record_to_payload(value))
            parsed_count += 1
        if not payload["ok"]:
            failures[payload["error"]] = failures.get(payload["error"], 0) + 1
        typer.echo(dump_json_line(payload))

    exit_code = EXIT_OK if not failures else EXIT_UNPARSED
    if report is not None:
        try:
            write_report_json_atomic(
                report,
                {
                    "record": record,
                    "total": len(lines),
                    "parsed": parsed_count,
                    "failures": failures,
                    "exit_code": exit_code,
                },
            )
        except OSError as exc:
            typer.echo(f"ERROR: write report failed: {exc}")
            raise typer.Exit(code=EXIT_ERROR) from exc

    if failures:
        summary = ", ".join(f"{code}={failures[code]}" for code in sorted(failures))
        typer.echo(f"WARNING(parse): {len(lines) - parsed_count} input(s) not parsed ({summary}).")
    raise typer.Exit(code=exit_code)


@app.command("inspect")
def inspect_command(
    schema: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    record: Annotated[str, typer.Option(...)],
    config: Annotated[Path | None, typer.Option(exists=True, dir_okay=False)] = None,
) -> None:
    """Show the composed pattern, capture width and field offsets of a record."""

    records = _load_records_or_exit(schema, config, None)
    record_type = records.get(record)
    if record_type is None:
        typer.echo(f"ERROR: unknown record: {record}")
        raise typer.Exit(code=EXIT_ERROR)

    compiled = compiled_schema(record_type)
    typer.echo(
        json.dumps(
            {
                "record": record,
                "template": compiled.template,
                "pattern": compiled.pattern,
                "captures_count": compiled.width,
                "offsets": compiled.offsets,
                "excluded": list(compiled.excluded),
            },
            ensure_ascii=False,
            indent=2,
        )
    )


@app.command("generate")
def generate_command(
    schema: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    out: Annotated[Path, typer.Option(..., dir_okay=False)],
    config: Annotated[Path | None, typer.Option(exists=True, dir_okay=False)] = None,
    force: Annotated[
        bool, typer.Option("--force", help="Overwrite the output module when it already exists.")
    ] = False,
) -> None:
    """Generate a Python module with precompiled record parsers."""

    if out.exists() and not force:
        typer.echo(f"ERROR: output already exists: {out} (use --force to overwrite).")
        raise typer.Exit(code=EXIT_ERROR)

    try:
        config_model = load_config(config)
        schema_model = load_schema_file(schema)
        source = generate_module(schema_model, config_model, source=schema.name)
    except CompileError as exc:
        typer.echo(f"ERROR(compile): {exc}")
        raise typer.Exit(code=EXIT_COMPILE) from exc
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=EXIT_ERROR) from exc

    try:
        write_source_atomic(out, source)
    except OSError as exc:
        typer.echo(f"ERROR: write output failed: {exc}")
        raise typer.Exit(code=EXIT_ERROR) from exc

    typer.echo(f"INFO: wrote {len(schema_model.records)} record(s) to {out}")


def _load_records_or_exit(
    schema: Path, config: Path | None, mode: str | None
) -> dict[str, type]:
    config_model = _load_config_or_exit(config, mode)
    try:
        return build_records(load_schema_file(schema), config_model)
    except CompileError as exc:
        typer.echo(f"ERROR(compile): {exc}")
        raise typer.Exit(code=EXIT_COMPILE) from exc
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=EXIT_ERROR) from exc


def _load_config_or_exit(config: Path | None, mode: str | None) -> ReformationConfig:
    try:
        config_model = load_config(config)
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=EXIT_ERROR) from exc

    if mode is None:
        return config_model
    normalized_mode = mode.lower().strip()
    if normalized_mode not in {"full", "search"}:
        typer.echo("ERROR: --mode must be one of: full, search.")
        raise typer.Exit(code=EXIT_ERROR)
    return config_model.model_copy(update={"mode": cast(MatchModeOption, normalized_mode)})


def main() -> None:
    """Console script entrypoint."""

    app()


if __name__ == "__main__":
    main()
