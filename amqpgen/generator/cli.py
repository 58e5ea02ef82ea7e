"""Command-line interface for amqpgen code generation."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import IO

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from amqpgen.generator import parse, python
from amqpgen.generator.emitter import Direction, emit_method
from amqpgen.generator.resolver import GenerationError
from amqpgen.generator.sizes import MethodSizeInfo, calculate_sizes
from amqpgen.generator.types import Specification
from amqpgen.generator.util import to_camel_case

logger = logging.getLogger("amqpgen")

err_console = Console(stderr=True)


def _load(input_file: IO[bytes]) -> Specification:
    """Parse a specification, reporting generation errors and exiting."""
    try:
        return parse(input_file.read())
    except GenerationError as err:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(err))}", highlight=False)
        sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """AMQP method code generator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@cli.command()
@click.option(
    "--input", "-i", "input_file", type=click.File("rb"), default="-", help="Specification XML"
)
@click.option(
    "--output",
    "-o",
    "output_file",
    type=click.File("w", encoding="utf-8"),
    default="-",
    help="Output file",
)
@click.option(
    "--runtime-import",
    "runtime_import",
    is_flag=False,
    flag_value="amqpgen.proto",
    default=None,
    help="Import path for runtime. No value=amqpgen.proto, omit=amqp_runtime",
)
def gen(input_file: IO[bytes], output_file: IO[str], runtime_import: str | None) -> None:
    """Generate Python method code from a specification."""
    spec = _load(input_file)

    # Default to "amqp_runtime" (sibling runtime folder) if not specified
    import_path = runtime_import if runtime_import is not None else "amqp_runtime"
    try:
        generated_file = python.render(spec, runtime_import=import_path)
    except GenerationError as err:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(err))}", highlight=False)
        sys.exit(1)

    output_file.write(generated_file)
    logger.info("Generated %d classes", len(spec.classes))


@cli.command()
@click.option("--output", "-o", "output_path", default=".", help="Output directory")
@click.option("--name", default="amqp_runtime", help="Runtime folder name")
def runtime(output_path: str, name: str) -> None:
    """Generate runtime support code."""
    runtime_dir = Path(output_path) / name
    runtime_dir.mkdir(parents=True, exist_ok=True)
    for filename, content in python.runtime().items():
        (runtime_dir / filename).write_text(content, encoding="utf-8")
    print(f"Generated Python runtime in {runtime_dir}")


@cli.command()
@click.option(
    "--input", "-i", "input_file", type=click.File("rb"), default="-", help="Specification XML"
)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(input_file: IO[bytes], output_json: bool) -> None:
    """Display methods, ids and argument sizes."""
    spec = _load(input_file)

    try:
        sizes = calculate_sizes(spec)
        operations = {
            (klass.index, m.index): len(emit_method(klass, m, Direction.ENCODE, spec))
            for klass in spec.classes
            for m in klass.methods
        }
    except GenerationError as err:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(err))}", highlight=False)
        sys.exit(1)

    if output_json:
        _output_json(spec, sizes, operations)
    else:
        _output_plain(spec, sizes, operations)


@cli.command()
@click.option(
    "--input", "-i", "input_file", type=click.File("rb"), default="-", help="Specification XML"
)
def dump(input_file: IO[bytes]) -> None:
    """Print the parsed specification model as JSON."""
    spec = _load(input_file)
    print(spec.to_json(indent=2))


def _format_size(size: int | None) -> str:
    """Format a size value, handling None for unbounded."""
    return "unbounded" if size is None else str(size)


def _output_json(
    spec: Specification,
    sizes: list[MethodSizeInfo],
    operations: dict[tuple[int, int], int],
) -> None:
    """Output specification info as JSON."""
    flags = {
        (klass.index, m.index): m for klass in spec.classes for m in klass.methods
    }
    data: dict = {
        "protocol": {
            "version": [spec.major, spec.minor, spec.revision],
            "port": spec.port,
            "constants": len(spec.constants),
            "domains": len(spec.domains),
        },
        "methods": {},
    }

    for info in sizes:
        key = (info.class_id, info.method_id)
        method = flags[key]
        data["methods"][to_camel_case(info.class_name, info.method_name)] = {
            "class_id": info.class_id,
            "method_id": info.method_id,
            "synchronous": method.synchronous,
            "content": method.content,
            "min_size": info.size.min_size,
            "max_size": info.size.max_size,
            "kind": info.size.kind.value,
            "operations": operations[key],
        }

    print(json.dumps(data, indent=2))


def _output_plain(
    spec: Specification,
    sizes: list[MethodSizeInfo],
    operations: dict[tuple[int, int], int],
) -> None:
    """Output specification info using rich text formatting."""
    console = Console()

    console.print("[bold cyan]Protocol[/bold cyan]")
    proto_table = Table(show_header=False, box=None, padding=(0, 2, 0, 2))
    proto_table.add_column("Label", style="dim")
    proto_table.add_column("Value", style="white")
    proto_table.add_row("Version", f"{spec.major}-{spec.minor}-{spec.revision}")
    proto_table.add_row("Port", str(spec.port))
    proto_table.add_row("Constants", str(len(spec.constants)))
    proto_table.add_row("Domains", str(len(spec.domains)))
    console.print(proto_table)
    console.print()

    flags = {
        (klass.index, m.index): m for klass in spec.classes for m in klass.methods
    }

    console.print("[bold cyan]Methods[/bold cyan]")
    method_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    method_table.add_column("Name", style="white")
    method_table.add_column("Id", style="green", justify="right")
    method_table.add_column("Flags", style="dim")
    method_table.add_column("Size", style="yellow", justify="right")
    method_table.add_column("Ops", style="magenta", justify="right")

    for info in sizes:
        key = (info.class_id, info.method_id)
        method = flags[key]

        min_size = info.size.min_size
        max_size = info.size.max_size
        if min_size == max_size:
            size_str = f"{min_size} bytes"
        else:
            size_str = f"{min_size}-{_format_size(max_size)} bytes"

        method_flags = []
        if method.synchronous:
            method_flags.append("sync")
        if method.content:
            method_flags.append("content")

        method_table.add_row(
            f"{info.class_name}.{info.method_name}",
            f"{info.class_id}/{info.method_id}",
            ",".join(method_flags),
            size_str,
            str(operations[key]),
        )

    console.print(method_table)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
