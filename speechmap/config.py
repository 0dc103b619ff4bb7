"""Configuration model and loaders for speechmap.

Responsibilities:
- Define playback configuration as a typed dataclass.
- Resolve playback and typing-echo settings with deterministic source precedence.
- Load configuration files and merge CLI and `SPEECHMAP_*` environment overrides.

Key types:
- `SpeechmapConfig`: normalized settings for one editor or CLI session.
- `PlaybackSettings`: resolved engine parameters for one playback run.
- `RuntimeConfigSources`: optional value sources for precedence resolution.
- `ConfigLoader`: static construction helpers for `SpeechmapConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from .parsing import normalize_optional_string, parse_bounded_int, parse_flag, parse_flag_token


DEFAULT_ENGINE = "pyttsx3"
SUPPORTED_ENGINE_IDS = frozenset({"pyttsx3", "silent"})
RATE_RANGE = (-10, 10)
VOLUME_RANGE = (0, 100)
ENV_PREFIX = "SPEECHMAP_"


@dataclass(frozen=True, slots=True)
class RuntimeConfigSources:
    """Source mappings used for deterministic runtime value precedence.

    Attributes:
        cli: Values explicitly provided by CLI options, keyed by field name.
        env: Environment variables, keyed by `SPEECHMAP_*` name.
    """

    cli: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class PlaybackSettings:
    """Resolved engine and typing-echo parameters for one run."""

    engine: str
    voice: str | None
    rate: int
    volume: int
    word_rate: int = 0
    word_volume: int = 100
    speak_on_word: bool = False
    speak_on_paragraph: bool = False


@dataclass(slots=True)
class SpeechmapConfig:
    """Settings for one speechmap session.

    Attributes:
        rules_path: Optional YAML file with pronunciation rules and shortcuts.
        engine: Speech engine identifier (`pyttsx3` or `silent`).
        voice: Optional installed voice name; `None` keeps the engine default.
        rate: Speech rate for highlighted playback, -10..10.
        volume: Volume for highlighted playback, 0..100.
        word_rate: Speech rate used when echoing typed words and paragraphs.
        word_volume: Volume used when echoing typed words and paragraphs.
        speak_on_word: Whether a word is spoken after it is typed.
        speak_on_paragraph: Whether a paragraph is spoken after it is typed.
    """

    rules_path: Path | None = None
    engine: str = DEFAULT_ENGINE
    voice: str | None = None
    rate: int = 0
    volume: int = 100
    word_rate: int = 0
    word_volume: int = 100
    speak_on_word: bool = False
    speak_on_paragraph: bool = False

    def validate(self) -> None:
        """Validate configuration values before a session starts."""

        self._validate_engine_id(self.engine, "engine")
        self._require_in_range(self.rate, "rate", RATE_RANGE)
        self._require_in_range(self.word_rate, "word_rate", RATE_RANGE)
        self._require_in_range(self.volume, "volume", VOLUME_RANGE)
        self._require_in_range(self.word_volume, "word_volume", VOLUME_RANGE)
        if self.voice is not None and not self.voice.strip():
            raise ValueError("`voice` must be a non-empty string when provided.")

    def resolved(self, sources: RuntimeConfigSources | None = None) -> PlaybackSettings:
        """Resolve playback settings with deterministic source precedence.

        Precedence for each key is:
        `cli` > `env` (`SPEECHMAP_<KEY>`) > config field value.
        """

        resolved_sources = sources if sources is not None else RuntimeConfigSources()

        engine = self._resolve_value("engine", resolved_sources) or self.engine
        voice = self._resolve_value("voice", resolved_sources) or self.voice
        self._validate_engine_id(engine, "engine")
        return PlaybackSettings(
            engine=engine,
            voice=voice,
            rate=self._resolve_int("rate", self.rate, RATE_RANGE, resolved_sources),
            volume=self._resolve_int("volume", self.volume, VOLUME_RANGE, resolved_sources),
            word_rate=self._resolve_int("word_rate", self.word_rate, RATE_RANGE, resolved_sources),
            word_volume=self._resolve_int(
                "word_volume", self.word_volume, VOLUME_RANGE, resolved_sources
            ),
            speak_on_word=self._resolve_flag("speak_on_word", self.speak_on_word, resolved_sources),
            speak_on_paragraph=self._resolve_flag(
                "speak_on_paragraph", self.speak_on_paragraph, resolved_sources
            ),
        )

    @staticmethod
    def _resolve_value(key: str, sources: RuntimeConfigSources) -> str | None:
        """Return the first non-blank value from CLI, then environment sources."""

        cli_value = SpeechmapConfig._normalized_lookup(sources.cli, key)
        if cli_value is not None:
            return cli_value
        return SpeechmapConfig._normalized_lookup(sources.env, f"{ENV_PREFIX}{key.upper()}")

    @staticmethod
    def _resolve_int(
        key: str, default: int, bounds: tuple[int, int], sources: RuntimeConfigSources
    ) -> int:
        """Resolve a bounded integer, falling back to the config field value."""

        text = SpeechmapConfig._resolve_value(key, sources)
        if text is None:
            return default
        return parse_bounded_int(text, key, minimum=bounds[0], maximum=bounds[1])

    @staticmethod
    def _resolve_flag(key: str, default: bool, sources: RuntimeConfigSources) -> bool:
        """Resolve an on/off flag, falling back to the config field value."""

        text = SpeechmapConfig._resolve_value(key, sources)
        if text is None:
            return default
        return parse_flag(text, key)

    @staticmethod
    def _normalized_lookup(mapping: Mapping[str, str], key: str) -> str | None:
        """Return a stripped mapping value for a key or `None` when missing/blank."""

        if key not in mapping:
            return None
        return normalize_optional_string(mapping.get(key))

    @staticmethod
    def _validate_engine_id(engine_id: str, field_name: str) -> None:
        """Validate engine identifiers against the supported engines."""

        if engine_id not in SUPPORTED_ENGINE_IDS:
            supported = ", ".join(sorted(SUPPORTED_ENGINE_IDS))
            raise ValueError(
                f"Unsupported `{field_name}` value `{engine_id}`; supported: {supported}."
            )

    @staticmethod
    def _require_in_range(value: int, field_name: str, bounds: tuple[int, int]) -> None:
        """Validate that an integer setting lies within inclusive bounds."""

        minimum, maximum = bounds
        if isinstance(value, bool) or not isinstance(value, int) or not minimum <= value <= maximum:
            raise ValueError(f"`{field_name}` must be between {minimum} and {maximum}.")


class ConfigLoader:
    """Factory methods for creating `SpeechmapConfig` from external sources."""

    _SUPPORTED_YAML_KEYS = frozenset(
        {
            "rules_path",
            "engine",
            "voice",
            "rate",
            "volume",
            "word_rate",
            "word_volume",
            "speak_on_word",
            "speak_on_paragraph",
        }
    )

    @staticmethod
    def from_yaml(path: Path) -> SpeechmapConfig:
        """Create a validated config from a YAML file.

        A relative `rules_path` is resolved against the config file's directory.
        """

        path_text = path.read_text(encoding="utf-8")
        payload = ConfigLoader._parse_yaml_payload(path_text, path)
        config = ConfigLoader.from_mapping(payload, source_label=f"YAML `{path}`")
        if config.rules_path is not None and not config.rules_path.is_absolute():
            config.rules_path = path.parent / config.rules_path
        return config

    @staticmethod
    def from_mapping(payload: Mapping[str, Any], source_label: str) -> SpeechmapConfig:
        """Build a validated config from a normalized mapping payload."""

        unknown = sorted(set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            key_list = ", ".join(unknown)
            raise ValueError(f"{source_label} includes unsupported key(s): {key_list}.")

        rules_text = normalize_optional_string(payload.get("rules_path"))
        config = SpeechmapConfig(
            rules_path=Path(rules_text) if rules_text is not None else None,
            engine=normalize_optional_string(payload.get("engine")) or DEFAULT_ENGINE,
            voice=normalize_optional_string(payload.get("voice")),
            rate=ConfigLoader._optional_int(payload, "rate", source_label, 0, RATE_RANGE),
            volume=ConfigLoader._optional_int(payload, "volume", source_label, 100, VOLUME_RANGE),
            word_rate=ConfigLoader._optional_int(
                payload, "word_rate", source_label, 0, RATE_RANGE
            ),
            word_volume=ConfigLoader._optional_int(
                payload, "word_volume", source_label, 100, VOLUME_RANGE
            ),
            speak_on_word=ConfigLoader._optional_boolean(payload, "speak_on_word", source_label),
            speak_on_paragraph=ConfigLoader._optional_boolean(
                payload, "speak_on_paragraph", source_label
            ),
        )
        config.validate()
        return config

    @staticmethod
    def _parse_yaml_payload(raw_text: str, path: Path) -> Mapping[str, Any]:
        """Parse YAML text and enforce a mapping root payload."""

        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` is not valid YAML: {exc}") from exc

        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return payload

    @staticmethod
    def _optional_int(
        payload: Mapping[str, Any],
        key: str,
        source_label: str,
        default: int,
        bounds: tuple[int, int],
    ) -> int:
        """Read and validate a bounded integer payload field."""

        if key not in payload or normalize_optional_string(payload[key]) is None:
            return default
        try:
            return parse_bounded_int(payload[key], key, minimum=bounds[0], maximum=bounds[1])
        except ValueError as exc:
            raise ValueError(f"{source_label} field {exc}") from exc

    @staticmethod
    def _optional_boolean(payload: Mapping[str, Any], key: str, source_label: str) -> bool:
        """Read and validate a boolean field from a payload."""

        if key not in payload:
            return False
        if parse_flag_token(payload[key]) is None:
            raise ValueError(
                f"{source_label} field `{key}` must be a boolean value "
                "(`true`/`false`, `1`/`0`, `yes`/`no`)."
            )
        return parse_flag(payload[key], key)
