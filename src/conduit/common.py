"""Common utility functions for the project."""

from enum import Enum
from typing import (
    Any,
    List,
)


class AnsiColors(Enum):
    """
    ANSI color codes for terminal output.
    """

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[33m"
    BLUE = "\033[94m"


def colored_print(text: str, color: AnsiColors, *args: Any, **kwargs: Any) -> None:
    """
    Print text in color.

    Args:
        text: The text to print
        color: The color to use (AnsiColors enum)
        args: Additional positional arguments for print
        kwargs: Additional keyword arguments for print
    """
    print(f"{color.value}{text}\033[0m", *args, **kwargs)  # ANSI reset at the end


def word_chunks(text: str) -> List[str]:
    """
    Split *text* on runs of whitespace and return each word followed by a single space.

    Used to simulate a streamed reply after the full reply is known.
    """
    return [f"{word} " for word in text.split()]
