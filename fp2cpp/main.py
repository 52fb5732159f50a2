"""Command line interface for fp2cpp.

This module provides a command-line interface for compiling fragment processor
programs, defined as Python modules, into a C++ header and implementation.
"""

import importlib.util
import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar, cast

import typer
from loguru import logger

from fp2cpp.compiler import CompilerSettings, ShaderCaps, analyze, compile_fp
from fp2cpp.compiler.errors import CompilerError
from fp2cpp.compiler.ir import Program

F = TypeVar("F", bound=Callable[..., Any])


def typed_command(app_command: Any) -> Callable[[F], F]:
    """Register a typer command without losing the function's signature."""

    def decorator(func: F) -> F:
        return cast(F, app_command(func))

    return decorator


app = typer.Typer(
    name="fp2cpp",
    help=(
        "Compile fragment processor programs into C++ GrFragmentProcessor classes. "
        "Commands: export, check."
    ),
    add_completion=False,
)


def _load_program_module(file_path: str) -> Any:
    """Load a Python file as a module.

    Args:
        file_path: Path to the Python file

    Returns:
        Loaded module
    """
    abs_path = os.path.abspath(file_path)
    module_dir = os.path.dirname(abs_path)
    module_name = os.path.splitext(os.path.basename(abs_path))[0]

    if module_dir not in sys.path:
        sys.path.insert(0, module_dir)

    spec = importlib.util.spec_from_file_location(module_name, abs_path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Could not load module from {file_path}")

    program_module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(program_module)

    return program_module


def _default_name(file_path: str) -> str:
    """Derive a processor name from a file name (``circle_blur.py -> CircleBlur``)."""
    stem = Path(file_path).stem
    return "".join(part[:1].upper() + part[1:] for part in stem.split("_") if part)


def _get_program(file_path: str, attr: str) -> Program:
    """Load the program bound to ``attr`` in a Python file.

    Exits with code 1 when the file cannot be loaded or holds no program.
    """
    try:
        module = _load_program_module(file_path)
    except (ImportError, OSError, SyntaxError) as e:
        logger.error(f"Failed to load program module: {e}")
        raise typer.Exit(1) from e
    except ValueError as e:
        logger.error(f"Invalid program: {e}")
        raise typer.Exit(1) from e

    program = getattr(module, attr, None)
    if callable(program) and not isinstance(program, Program):
        try:
            program = program()
        except ValueError as e:
            logger.error(f"Invalid program: {e}")
            raise typer.Exit(1) from e
    if not isinstance(program, Program):
        logger.error(f"No Program named '{attr}' found in {file_path}")
        raise typer.Exit(1)
    logger.info(f"Loaded program '{attr}' from {file_path}")
    return program


@typed_command(app.command("export"))
def export_program(
    program_file: str = typer.Argument(
        ..., help="Python file defining the program"
    ),
    output_dir: Path | None = typer.Argument(
        None, help="Directory for the generated files (prints to stdout if omitted)"
    ),
    name: str = typer.Option(
        "", "--name", "-n", help="Processor name (defaults to the file name)"
    ),
    attr: str = typer.Option(
        "program", "--attr", "-a", help="Module attribute holding the Program"
    ),
    no_test_utils: bool = typer.Option(
        False, "--no-test-utils", help="Omit the @test factory hook"
    ),
    replace_settings: bool = typer.Option(
        False, "--replace-settings", help="Fold sk_Caps fields to literal values"
    ),
) -> None:
    """Compile a program into a C++ header and implementation.

    Example: fp2cpp export examples/circle.py out/ --name Circle
    """
    program = _get_program(program_file, attr)
    settings = CompilerSettings(
        test_utils=not no_test_utils, replace_settings=replace_settings
    )
    processor_name = name or _default_name(program_file)

    try:
        result = compile_fp(program, processor_name, ShaderCaps.default(), settings)
    except CompilerError as e:
        logger.error(f"Compilation error: {e}")
        raise typer.Exit(1) from e
    except (KeyError, ValueError) as e:
        logger.error(f"Invalid program: {e}")
        raise typer.Exit(1) from e

    if output_dir is None:
        typer.echo(result.header, nl=False)
        typer.echo(result.source, nl=False)
        return

    output_dir.mkdir(parents=True, exist_ok=True)
    for file_name, text in (
        (result.header_file, result.header),
        (result.source_file, result.source),
    ):
        path = output_dir / file_name
        logger.info(f"Writing {path}...")
        with open(path, "w") as f:
            f.write(text)
    logger.info(f"Exported {result.class_name} to {output_dir}")


@typed_command(app.command("check"))
def check_program(
    program_file: str = typer.Argument(
        ..., help="Python file defining the program"
    ),
    attr: str = typer.Option(
        "program", "--attr", "-a", help="Module attribute holding the Program"
    ),
) -> None:
    """Validate a program's declarations and show how each variable is used.

    Example: fp2cpp check examples/circle.py
    """
    program = _get_program(program_file, attr)
    try:
        info = analyze(program, _default_name(program_file))
    except CompilerError as e:
        logger.error(f"Compilation error: {e}")
        raise typer.Exit(1) from e

    for classification in info.roles:
        var = classification.variable
        typer.echo(f"{var.name:<24} {str(var.type):<20} {classification.role.value}")
    for child in info.children:
        typer.echo(f"child {child.name} -> index {child.index}")
    logger.info(f"{program_file}: OK")


if __name__ == "__main__":
    app()
