"""Command-line interface for speechmap.

Responsibilities:
- Expose user-facing commands for transforming, inspecting, and speaking text.
- Convert CLI arguments into `SpeechmapConfig` values and drive playback.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Annotated

import typer

from .cli_rendering import (
    echo_highlight,
    echo_position_map,
    echo_rule_summary,
    exit_with_command_error,
)
from .config import ConfigLoader, RuntimeConfigSources, SpeechmapConfig
from .engine_factory import EngineFactory
from .errors import SpeechEngineError, SpeechStageError
from .models.datatypes import Highlight, TransformResult
from .playback.dispatch import CallbackMarshal
from .playback.navigator import PlaybackNavigator
from .rules import RuleBook, RuleLoader
from .telemetry.logger import SpeechLogger
from .text.shortcuts import ShortcutExpander
from .text.transformer import TextTransformer
from .tts.engine import EngineState, SpeechEngine, SpeechEnvelope
from .tts.pyttsx3_engine import Pyttsx3SpeechEngine
from .tts.silent import SilentSpeechEngine

app = typer.Typer(
    name="speechmap",
    no_args_is_help=True,
    help="speechmap CLI.",
)

_POLL_INTERVAL_SECONDS = 0.02
# Typed characters that complete a shortcut before they are inserted.
_EXPANSION_TRIGGERS = frozenset(" \n.,\";!")


def _load_yaml_config(config_path: Path | None) -> SpeechmapConfig:
    """Load a YAML config file when requested and map failures to stage errors."""

    if config_path is None:
        return SpeechmapConfig()

    try:
        return ConfigLoader.from_yaml(config_path)
    except FileNotFoundError as exc:
        raise SpeechStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise SpeechStageError(
            stage="config",
            detail=f"Invalid config file `{config_path}`: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc


def _load_rules(rules_path: Path | None) -> RuleBook:
    """Load a rule file when one is given; an absent path yields an empty rule book."""

    if rules_path is None:
        return RuleBook()

    try:
        return RuleLoader.from_yaml(rules_path)
    except FileNotFoundError as exc:
        raise SpeechStageError(
            stage="rules",
            detail=f"Rule file not found: `{rules_path}`.",
            hint="Provide an existing path via `--rules <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise SpeechStageError(
            stage="rules",
            detail=str(exc),
            hint="Rule files need top-level `pronunciations` and/or `shortcuts` lists.",
        ) from exc


def _read_input_text(input_path: Path) -> str:
    """Read the written text to transform or speak."""

    try:
        return input_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise SpeechStageError(
            stage="input",
            detail=f"Input file not found: `{input_path}`.",
            hint="Pass an existing UTF-8 text file.",
        ) from exc
    except UnicodeDecodeError as exc:
        raise SpeechStageError(
            stage="input",
            detail=f"Input file `{input_path}` is not valid UTF-8.",
        ) from exc


def _create_engine(engine_id: str) -> SpeechEngine:
    """Create a speech engine and map construction failures to stage errors."""

    try:
        return EngineFactory.create(engine_id)
    except ValueError as exc:
        raise SpeechStageError(
            stage="engine",
            detail=str(exc),
            hint="Use `--engine pyttsx3` or `--engine silent`.",
        ) from exc


def _wait_until_ready(engine: SpeechEngine, marshal: CallbackMarshal) -> None:
    """Pump the engine and run marshaled callbacks until playback has stopped."""

    while True:
        if isinstance(engine, SilentSpeechEngine):
            engine.step()
        elif isinstance(engine, Pyttsx3SpeechEngine):
            engine.poll()
            time.sleep(_POLL_INTERVAL_SECONDS)
        marshal.drain()
        if engine.state is EngineState.READY and not len(marshal):
            return


@app.command("transform")
def transform_command(
    input_path: Annotated[Path, typer.Argument(help="Path to a UTF-8 text file.")],
    rules_path: Annotated[
        Path | None,
        typer.Option("--rules", help="Path to YAML pronunciation rule file."),
    ] = None,
    show_map: Annotated[
        bool,
        typer.Option("--show-map", help="Print the spoken/written position map."),
    ] = False,
    envelope: Annotated[
        bool,
        typer.Option("--envelope", help="Wrap the spoken text in the SSML document envelope."),
    ] = False,
) -> None:
    """Print the spoken text produced for a file."""

    try:
        written = _read_input_text(input_path)
        book = _load_rules(rules_path)
        result = TextTransformer().transform(written, book.rules)
    except Exception as exc:
        exit_with_command_error("transform", exc)

    if envelope:
        typer.echo(SpeechEnvelope.ssml().wrap(result.spoken))
    else:
        typer.echo(result.spoken)
    if show_map:
        echo_position_map(result)


@app.command("rules")
def rules_command(
    rules_path: Annotated[Path, typer.Argument(help="Path to YAML pronunciation rule file.")],
) -> None:
    """Validate a rule file and summarize its rules and shortcuts."""

    try:
        book = _load_rules(rules_path)
    except Exception as exc:
        exit_with_command_error("rules", exc)

    echo_rule_summary(book)


@app.command("speak")
def speak_command(
    input_path: Annotated[Path, typer.Argument(help="Path to a UTF-8 text file.")],
    rules_path: Annotated[
        Path | None,
        typer.Option("--rules", help="Path to YAML pronunciation rule file (overrides config)."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to YAML config file with playback defaults."),
    ] = None,
    engine_id: Annotated[
        str | None,
        typer.Option("--engine", help="Speech engine id: `pyttsx3` or `silent`."),
    ] = None,
    rate: Annotated[
        int | None,
        typer.Option("--rate", help="Speech rate from -10 (slowest) to 10 (fastest)."),
    ] = None,
    volume: Annotated[
        int | None,
        typer.Option("--volume", help="Volume from 0 to 100."),
    ] = None,
    voice: Annotated[
        str | None,
        typer.Option("--voice", help="Installed voice name."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Emit transform and playback event lines on stderr."),
    ] = False,
) -> None:
    """Speak a file with word highlighting printed as playback progresses."""

    event_logger = SpeechLogger(level="INFO" if verbose else "WARNING")
    try:
        config = _load_yaml_config(config_file)
        runtime_cli_values = {
            key: str(value)
            for key, value in {
                "engine": engine_id,
                "rate": rate,
                "volume": volume,
                "voice": voice,
            }.items()
            if value is not None
        }
        try:
            settings = config.resolved(
                RuntimeConfigSources(cli=runtime_cli_values, env=os.environ)
            )
        except ValueError as exc:
            raise SpeechStageError(
                stage="config",
                detail=str(exc),
                hint="Check `--engine`, `--rate`, `--volume`, and SPEECHMAP_* variables.",
            ) from exc
        written = _read_input_text(input_path)
        book = _load_rules(rules_path if rules_path is not None else config.rules_path)
        engine = _create_engine(settings.engine)
        marshal = CallbackMarshal()

        def _echo(highlight: Highlight) -> None:
            if highlight.length:
                echo_highlight(written, highlight)

        navigator = PlaybackNavigator(
            engine,
            book.rules,
            on_highlight=_echo,
            marshal=marshal,
            event_logger=event_logger,
        )
        try:
            navigator.set_rate(settings.rate)
            navigator.set_volume(settings.volume)
            if settings.voice is not None:
                navigator.select_voice(settings.voice)
            navigator.speak_all(written)
            _wait_until_ready(engine, marshal)
        except SpeechEngineError as exc:
            raise SpeechStageError(
                stage="engine",
                detail=str(exc),
                hint="Run `speechmap voices` to list installed voices, or use `--engine silent`.",
            ) from exc
    except Exception as exc:
        exit_with_command_error("speak", exc, event_logger)

    typer.echo(f"Spoke {len(written)} characters with engine `{settings.engine}`.")


@app.command("type")
def type_command(
    input_path: Annotated[Path, typer.Argument(help="Path to a UTF-8 text file to replay.")],
    rules_path: Annotated[
        Path | None,
        typer.Option("--rules", help="Path to YAML rule file with pronunciations and shortcuts."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to YAML config file with typing echo settings."),
    ] = None,
    engine_id: Annotated[
        str | None,
        typer.Option("--engine", help="Speech engine id: `pyttsx3` or `silent`."),
    ] = None,
    words: Annotated[
        bool,
        typer.Option("--words", help="Speak each word as it is completed."),
    ] = False,
    paragraphs: Annotated[
        bool,
        typer.Option("--paragraphs", help="Speak each paragraph when Enter is typed."),
    ] = False,
) -> None:
    """Replay a file as typed input, expanding shortcuts and echoing typed text."""

    try:
        config = _load_yaml_config(config_file)
        cli_values: dict[str, str] = {}
        if engine_id is not None:
            cli_values["engine"] = engine_id
        if words:
            cli_values["speak_on_word"] = "true"
        if paragraphs:
            cli_values["speak_on_paragraph"] = "true"
        try:
            settings = config.resolved(RuntimeConfigSources(cli=cli_values, env=os.environ))
        except ValueError as exc:
            raise SpeechStageError(
                stage="config",
                detail=str(exc),
                hint="Check `--engine` and SPEECHMAP_* variables.",
            ) from exc
        typed = _read_input_text(input_path)
        book = _load_rules(rules_path if rules_path is not None else config.rules_path)
        engine = _create_engine(settings.engine)
        marshal = CallbackMarshal()
        navigator = PlaybackNavigator(engine, book.rules, marshal=marshal)
        expander = ShortcutExpander(book.shortcuts)

        def say(spoken: TransformResult | None) -> None:
            if spoken is not None and spoken.written.strip():
                typer.echo(f"Said: {spoken.written.strip()}")
                _wait_until_ready(engine, marshal)

        buffer = ""
        try:
            navigator.set_rate(settings.word_rate)
            navigator.set_volume(settings.word_volume)
            for character in typed:
                expanded = False
                if character in _EXPANSION_TRIGGERS:
                    expansion = expander.expand(buffer, len(buffer))
                    if expansion is not None:
                        expanded = True
                        end = expansion.start + expansion.length
                        typer.echo(
                            f"Expanded {buffer[expansion.start:end]!r} -> "
                            f"{expansion.replacement_text!r}"
                        )
                        buffer = (
                            buffer[: expansion.start] + expansion.replacement_text + buffer[end:]
                        )
                        if settings.speak_on_word:
                            say(navigator.speak_expansion(expansion))
                if character == " " and settings.speak_on_word and not expanded:
                    say(navigator.speak_word(buffer, len(buffer)))
                elif character == "\n" and settings.speak_on_paragraph:
                    say(navigator.speak_paragraph(buffer, len(buffer)))
                buffer += character
        except SpeechEngineError as exc:
            raise SpeechStageError(stage="engine", detail=str(exc)) from exc
    except Exception as exc:
        exit_with_command_error("type", exc)

    typer.echo(buffer, nl=False)
    if not buffer.endswith("\n"):
        typer.echo()


@app.command("voices")
def voices_command(
    engine_id: Annotated[
        str,
        typer.Option("--engine", help="Speech engine id: `pyttsx3` or `silent`."),
    ] = "pyttsx3",
) -> None:
    """List installed voices for a speech engine."""

    try:
        engine = _create_engine(engine_id)
        try:
            names = engine.voices()
        except SpeechEngineError as exc:
            raise SpeechStageError(stage="engine", detail=str(exc)) from exc
    except Exception as exc:
        exit_with_command_error("voices", exc)

    for name in names:
        typer.echo(name)


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
