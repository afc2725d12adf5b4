"""
Operator interaction.

Operations never read the console directly; they ask an Operator. The CLI
supplies TyperOperator, tests supply a scripted one.
"""

from __future__ import annotations

from typing import Protocol

import typer
from loguru import logger


class Operator(Protocol):
    def prompt_int(self, message: str, default: int) -> int:
        """Ask for a non-negative integer."""
        ...

    def prompt_str(self, message: str) -> str:
        """Ask for a non-empty string."""
        ...

    def confirm(self, message: str, default: bool = False) -> bool: ...

    def choose(self, message: str, options: list[str]) -> int:
        """Ask for the index of one of `options`."""
        ...


class TyperOperator:
    """Console operator using typer prompts."""

    def prompt_int(self, message: str, default: int) -> int:
        while True:
            # click re-prompts on values that do not parse as int
            value: int = typer.prompt(message, default=default, type=int)
            if value >= 0:
                return value
            logger.warning(f"Expected a non-negative integer, got {value}")

    def prompt_str(self, message: str) -> str:
        while True:
            value = str(typer.prompt(message, default="", show_default=False)).strip()
            if value:
                return value

    def confirm(self, message: str, default: bool = False) -> bool:
        return typer.confirm(message, default=default)

    def choose(self, message: str, options: list[str]) -> int:
        typer.echo(message)
        for index, option in enumerate(options):
            typer.echo(f"  ({index}) {option}")
        choice: int = typer.prompt("Choice", type=int)
        return choice
