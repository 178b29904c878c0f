"""
Terminal prompt backed by click.

Implements the Prompt contract used by the resolver and the orchestrator.
"""

from typing import Sequence, TypeVar

import click


V = TypeVar("V")


class ClickPrompt:
    """Interactive prompt on the controlling terminal."""

    def confirm(self, message: str, default: bool = True) -> bool:
        return click.confirm(message, default=default)

    def select_one(self, message: str, choices: Sequence[tuple[str, V]]) -> V:
        """
        Show a numbered list and return the value of the chosen entry.

        Raises:
            ValueError: If choices is empty.
        """
        if not choices:
            raise ValueError("select_one() needs at least one choice")

        click.echo(message)
        for number, (label, _) in enumerate(choices, start=1):
            click.echo(f"  {number}. {label}")

        selected = click.prompt(
            "Choice",
            type=click.IntRange(1, len(choices)),
            default=1
        )
        return choices[selected - 1][1]

    def free_text(self, message: str, default: str | None = None) -> str:
        return click.prompt(message, default=default, type=str)
