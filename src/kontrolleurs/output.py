"""Selection output: hand the chosen command back to the invoking shell."""

from __future__ import annotations

from typing import Literal, TextIO

from kontrolleurs.state import Cancelled, Confirmed, SearchState

OutputFormat = Literal["plain", "fish"]

OUTPUT_FORMATS: tuple[str, ...] = ("plain", "fish")

EXIT_SELECTED = 0
EXIT_CANCELLED = 1
EXIT_ERROR = 2


def format_selection(outcome: Confirmed, output_format: OutputFormat = "plain") -> str:
    """Render a confirmed selection in the wire format the shell binding reads.

    ``plain`` is the command followed by a newline. ``fish`` is three
    fields: whether to execute immediately, the cursor position inside the
    command, and the command terminated by NUL (commands may span lines).
    """
    if output_format == "fish":
        execute = "true" if outcome.execute else "false"
        return f"{execute}\n{outcome.cursor}\n{outcome.entry.text}\0"
    return f"{outcome.entry.text}\n"


def emit(outcome: SearchState, stream: TextIO, output_format: OutputFormat = "plain") -> int:
    """Write *outcome* to *stream* and return the process exit status.

    Must only be called once the terminal has been released.
    """
    if isinstance(outcome, Confirmed):
        stream.write(format_selection(outcome, output_format))
        stream.flush()
        return EXIT_SELECTED
    if isinstance(outcome, Cancelled):
        return EXIT_CANCELLED
    raise ValueError(f"search has not finished: {outcome!r}")
