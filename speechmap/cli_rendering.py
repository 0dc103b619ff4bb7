"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
position map tables, rule summaries, and playback highlight lines.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .errors import SpeechStageError
from .models.datatypes import Highlight, TransformResult
from .rules import RuleBook
from .telemetry.logger import SpeechLogger


def exit_with_command_error(
    command_name: str, exc: Exception, event_logger: SpeechLogger | None = None
) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1.

    When `event_logger` is given, a failure event naming the stage and the
    underlying error type is emitted before the diagnostics.
    """

    if event_logger is not None:
        stage = exc.stage if isinstance(exc, SpeechStageError) else command_name
        cause = exc.__cause__ if isinstance(exc.__cause__, Exception) else exc
        event_logger.log_failure(stage, type(cause).__name__)
    if isinstance(exc, SpeechStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_position_map(result: TransformResult) -> None:
    """Print one row per map entry: spoken range, written range, kind, and text."""

    typer.echo("spoken        written       kind              text")
    for entry in result.position_map:
        spoken_range = f"{entry.spoken_start}+{entry.spoken_length}"
        written_range = f"{entry.written_start}+{entry.written_length}"
        text = result.spoken[entry.spoken_start : entry.spoken_end]
        typer.echo(f"{spoken_range:<13} {written_range:<13} {entry.kind.name:<17} {text!r}")


def echo_rule_summary(book: RuleBook) -> None:
    """Print loaded rules, shortcuts, and skipped record diagnostics."""

    typer.echo(f"Rules: {len(book.rules)}")
    for rule in book.rules:
        alphabet = f" alphabet={rule.phoneme_alphabet}" if rule.phoneme_alphabet else ""
        typer.echo(
            f"  {rule.kind.value} {rule.written_text!r} -> {rule.pronounced_text!r}{alphabet}"
        )
    typer.echo(f"Shortcuts: {len(book.shortcuts)}")
    for shortcut in book.shortcuts:
        typer.echo(f"  {shortcut.shortcut_text!r} -> {shortcut.replacement_text!r}")
    if book.skipped:
        typer.echo(f"Skipped: {len(book.skipped)}")
        for diagnostic in book.skipped:
            typer.secho(f"  {diagnostic}", fg=typer.colors.YELLOW)


def echo_highlight(written: str, highlight: Highlight) -> None:
    """Print the written text a highlight covers."""

    fragment = written[highlight.start : highlight.start + highlight.length]
    typer.echo(f"[{highlight.start}+{highlight.length}] {fragment}")
