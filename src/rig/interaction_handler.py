"""User interaction abstraction for the interactive session and tests.

This module provides a protocol-based approach to user interaction, allowing
different implementations for the terminal (click prompts and rich tables)
and for testing (pre-programmed responses).

Example:
    >>> handler = CLIInteractionHandler()
    >>> choices = [("gcp", "Google Cloud"), ("aws", "Amazon Web Services")]
    >>> idx = handler.prompt_choice("Select provider:", choices)
    >>> handler.show_info(f"Selected: {choices[idx][0]}")

    Testing example:
    >>> test_handler = MockInteractionHandler(choice_responses=[1])
    >>> test_handler.prompt_choice("Select:", [("a", "opt a"), ("b", "opt b")])
    1
"""

from typing import Protocol, runtime_checkable

import click
from rich.console import Console
from rich.table import Table


@runtime_checkable
class InteractionHandler(Protocol):
    """Protocol for user interaction."""

    def prompt_choice(self, message: str, choices: list[tuple[str, str]]) -> int:
        """Prompt user to select from multiple choices.

        Args:
            message: Prompt message to display
            choices: List of (key, description) tuples

        Returns:
            Zero-based index of selected choice

        Raises:
            ValueError: If choices is empty
            click.Abort: If user cancels (CLI implementation)
        """
        ...

    def prompt_text(self, message: str, default: str | None = None) -> str:
        """Prompt for a line of text."""
        ...

    def confirm(self, message: str, default: bool = True) -> bool:
        """Prompt for yes/no confirmation."""
        ...

    def show_table(self, table: Table) -> None:
        """Display a rich table."""
        ...

    def show_text(self, text: str) -> None:
        """Display multi-line output (advice, generated scripts)."""
        ...

    def show_info(self, message: str) -> None:
        ...

    def show_warning(self, message: str) -> None:
        ...

    def show_error(self, message: str) -> None:
        ...


class CLIInteractionHandler:
    """Terminal interaction using click prompts and rich output."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def prompt_choice(self, message: str, choices: list[tuple[str, str]]) -> int:
        """Numbered menu; re-prompts until a valid number is entered.

        Raises:
            ValueError: If choices is empty
            click.Abort: If user cancels (Ctrl+C)
        """
        if not choices:
            raise ValueError("choices cannot be empty")

        click.echo()
        click.secho(message, fg="green", bold=True)
        click.echo()

        for i, (_key, description) in enumerate(choices, 1):
            click.echo(f"  {click.style(str(i), fg='cyan')}. {description}")

        click.echo()

        while True:
            try:
                choice_str = click.prompt("Enter choice", type=str, show_default=False)
                choice_num = int(choice_str)

                if 1 <= choice_num <= len(choices):
                    return choice_num - 1
                click.secho(f"Please enter a number between 1 and {len(choices)}", fg="red")
            except ValueError:
                click.secho("Please enter a valid number", fg="red")
            except (KeyboardInterrupt, click.Abort):
                click.echo()
                raise click.Abort()

    def prompt_text(self, message: str, default: str | None = None) -> str:
        return click.prompt(message, default=default, type=str, show_default=default is not None)

    def confirm(self, message: str, default: bool = True) -> bool:
        return click.confirm(click.style(message, fg="yellow"), default=default)

    def show_table(self, table: Table) -> None:
        self.console.print(table)

    def show_text(self, text: str) -> None:
        click.echo()
        click.echo(text)

    def show_info(self, message: str) -> None:
        click.secho(message, fg="green")

    def show_warning(self, message: str) -> None:
        click.secho(f"Warning: {message}", fg="yellow", err=True)

    def show_error(self, message: str) -> None:
        click.secho(f"Error: {message}", fg="red", err=True)


class MockInteractionHandler:
    """Interaction handler with pre-programmed responses for tests.

    Every interaction is recorded in ``interactions`` for verification.

    Example:
        >>> handler = MockInteractionHandler(choice_responses=[0], confirm_responses=[True])
        >>> handler.prompt_choice("Select:", [("a", "opt a"), ("b", "opt b")])
        0
        >>> handler.confirm("Continue?")
        True
        >>> len(handler.interactions)
        2
    """

    def __init__(
        self,
        choice_responses: list[int] | None = None,
        confirm_responses: list[bool] | None = None,
        text_responses: list[str] | None = None,
    ):
        self.choice_responses = choice_responses or []
        self.confirm_responses = confirm_responses or []
        self.text_responses = text_responses or []
        self.interactions: list[dict] = []
        self._choice_index = 0
        self._confirm_index = 0
        self._text_index = 0

    def prompt_choice(self, message: str, choices: list[tuple[str, str]]) -> int:
        """Return the next pre-programmed choice.

        Raises:
            ValueError: If choices is empty or the response is out of range
            IndexError: If no more choice responses are available
        """
        if not choices:
            raise ValueError("choices cannot be empty")

        if self._choice_index >= len(self.choice_responses):
            raise IndexError(
                f"No more choice responses available. "
                f"Provided {len(self.choice_responses)}, "
                f"needed {self._choice_index + 1}"
            )

        response = self.choice_responses[self._choice_index]
        self._choice_index += 1

        if not 0 <= response < len(choices):
            raise ValueError(
                f"Invalid pre-programmed response {response} for {len(choices)} choices"
            )

        self.interactions.append(
            {"type": "choice", "message": message, "choices": choices, "response": response}
        )
        return response

    def prompt_text(self, message: str, default: str | None = None) -> str:
        if self._text_index >= len(self.text_responses):
            raise IndexError(
                f"No more text responses available. "
                f"Provided {len(self.text_responses)}, "
                f"needed {self._text_index + 1}"
            )

        response = self.text_responses[self._text_index]
        self._text_index += 1
        if not response and default is not None:
            response = default

        self.interactions.append({"type": "text", "message": message, "response": response})
        return response

    def confirm(self, message: str, default: bool = True) -> bool:
        if self._confirm_index >= len(self.confirm_responses):
            raise IndexError(
                f"No more confirm responses available. "
                f"Provided {len(self.confirm_responses)}, "
                f"needed {self._confirm_index + 1}"
            )

        response = self.confirm_responses[self._confirm_index]
        self._confirm_index += 1

        self.interactions.append(
            {"type": "confirm", "message": message, "default": default, "response": response}
        )
        return response

    def show_table(self, table: Table) -> None:
        self.interactions.append({"type": "table", "table": table, "message": str(table.title)})

    def show_text(self, text: str) -> None:
        self.interactions.append({"type": "text_output", "message": text})

    def show_info(self, message: str) -> None:
        self.interactions.append({"type": "info", "message": message})

    def show_warning(self, message: str) -> None:
        self.interactions.append({"type": "warning", "message": message})

    def show_error(self, message: str) -> None:
        self.interactions.append({"type": "error", "message": message})

    def get_interactions_by_type(self, interaction_type: str) -> list[dict]:
        """All recorded interactions of one type ("choice", "info", "error", ...)."""
        return [i for i in self.interactions if i["type"] == interaction_type]

    def messages(self, interaction_type: str) -> list[str]:
        return [i["message"] for i in self.get_interactions_by_type(interaction_type)]


__all__ = ["CLIInteractionHandler", "InteractionHandler", "MockInteractionHandler"]
