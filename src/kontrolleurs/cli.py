"""CLI entry point for kontrolleurs. Uses Click for argument parsing."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Sequence

import click

from kontrolleurs.config import Config, load_config
from kontrolleurs.errors import KontrolleursError
from kontrolleurs.history import (
    HISTORY_FORMATS,
    HistoryEntry,
    default_history_path,
    load_history_from,
)
from kontrolleurs.keybindings import KeybindingsManager
from kontrolleurs.output import EXIT_ERROR, OUTPUT_FORMATS, emit
from kontrolleurs.render import AnsiTheme
from kontrolleurs.search import SearchSession
from kontrolleurs.state import SearchState
from kontrolleurs.terminal import TtyTerminal

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _setup_logging(log_file: str | None, log_level: str) -> None:
    # The search owns the screen, so a log file is the only place for
    # anything below WARNING.
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format=LOG_FORMAT,
        filename=log_file,
    )


def build_session(config: Config, entries: Sequence[HistoryEntry], query: str) -> SearchSession:
    theme = config.theme
    return SearchSession(
        entries,
        query=query,
        prompt=config.prompt,
        max_results=config.max_results,
        weights=config.weights,
        keybindings=KeybindingsManager(config.keybindings),
        theme=AnsiTheme(prompt=theme.prompt, match=theme.match, selected=theme.selected, info=theme.info),
    )


def open_terminal(config: Config) -> TtyTerminal:
    terminal = TtyTerminal(escape_timeout=config.escape_timeout)
    terminal.open()
    return terminal


def run_search(config: Config, history_path: str, history_format: str, query: str) -> SearchState:
    entries = load_history_from(history_path, history_format)  # type: ignore[arg-type]
    session = build_session(config, entries, query)
    terminal = open_terminal(config)
    try:
        return session.run(terminal)
    finally:
        terminal.close()


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--history",
    "history_path",
    default=None,
    help="History file to search, '-' for stdin (default: stdin when piped, else $HISTFILE).",
)
@click.option(
    "--format",
    "history_format",
    type=click.Choice(HISTORY_FORMATS),
    default=None,
    help="History record format.",
)
@click.option("-q", "--query", default="", help="Initial query, e.g. the current command line.")
@click.option(
    "--output-format",
    type=click.Choice(OUTPUT_FORMATS),
    default="plain",
    help="How the selection is written to stdout.",
)
@click.option("--max-results", type=click.IntRange(min=1), default=None, help="Maximum ranked results.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.config/kontrolleurs/config.json).",
)
@click.option("--log-file", envvar="KONTROLLEURS_LOG_FILE", default=None, help="Write logs to this file.")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default="warning",
    help="Log level.",
)
def main(
    history_path: str | None,
    history_format: str | None,
    query: str,
    output_format: str,
    max_results: int | None,
    config_path: Path | None,
    log_file: str | None,
    log_level: str,
) -> None:
    """Search shell history interactively and print the chosen command."""
    _setup_logging(log_file, log_level)

    try:
        config = load_config(config_path)
        if max_results is not None:
            config.max_results = max_results
        outcome = run_search(
            config,
            history_path or default_history_path(),
            history_format or config.history_format,
            query,
        )
    except KontrolleursError as e:
        logger.debug("Search aborted", exc_info=True)
        click.echo(f"kontrolleurs: {e}", err=True)
        sys.exit(EXIT_ERROR)

    sys.exit(emit(outcome, sys.stdout, output_format))  # type: ignore[arg-type]


if __name__ == "__main__":
    main()
