"""Playback navigation over transformed text.

Responsibilities:
- Start utterances for the whole text, a selection, a paragraph, or a word.
- Turn engine progress callbacks into editor highlights in written coordinates.
- Restart speech at a written offset after skips and rate/volume/voice changes.
- Tell restart-induced stops apart from user stops.

Key types:
- `PlaybackNavigator`: per-session navigation controller.
- `RestartMarker`: one-shot flag consumed by the stop handler.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from loguru import logger

from ..models.datatypes import (
    Highlight,
    MappingKind,
    NavigationCursor,
    ShortcutExpansion,
    SubstitutionRule,
    TransformResult,
)
from ..telemetry.logger import SpeechLogger
from ..text.boundaries import (
    is_spoken_char,
    search_ahead_beyond_word_end,
    search_ahead_to_sentence_end,
    search_ahead_to_word_start,
    search_back_to_before_word_start,
    search_back_to_word_end,
)
from ..text.capture import paragraph_before_caret, word_before_caret
from ..text.transformer import TextTransformer
from ..tts.engine import EngineState, SpeechEngine
from .dispatch import CallbackMarshal

MIN_RATE = -10
MAX_RATE = 10
MIN_VOLUME = 0
MAX_VOLUME = 100
SKIP_BACK_SECONDS = 8.0
SKIP_AHEAD_SECONDS = 12.0
SHORT_SKIP_AHEAD_SECONDS = 3.0

HighlightHandler = Callable[[Highlight], None]
StateHandler = Callable[[EngineState], None]


def estimated_chars_per_second(rate: int) -> float:
    """Approximate spoken characters per second at a -10..10 rate, ignoring pauses."""

    return 2 ** ((rate + 11) * 0.15) * 4


def skip_budget(rate: int, seconds: float) -> int:
    """Return the number of written characters that `seconds` of speech covers."""

    return int(round(estimated_chars_per_second(rate) * seconds))


def _call_now(callback: Callable[..., None], *args: object) -> None:
    callback(*args)


class RestartMarker:
    """Two-state flag telling the stop handler that a cancel belongs to a restart."""

    __slots__ = ("_armed",)

    def __init__(self) -> None:
        self._armed = False

    @property
    def armed(self) -> bool:
        """Whether the next stop should be treated as restart-induced."""

        return self._armed

    def arm(self) -> None:
        """Mark the next stop as restart-induced."""

        self._armed = True

    def consume(self) -> bool:
        """Return the flag and clear it in one step."""

        armed, self._armed = self._armed, False
        return armed


class PlaybackNavigator:
    """Drive speech, highlighting, and skipping for one editor.

    All methods must run on the thread that owns this navigator. When the engine
    reports from another thread, pass a `CallbackMarshal` and call its `drain()`
    from the owning thread.
    """

    def __init__(
        self,
        engine: SpeechEngine,
        rules: Iterable[SubstitutionRule] = (),
        *,
        transformer: TextTransformer | None = None,
        on_highlight: HighlightHandler | None = None,
        on_state_change: StateHandler | None = None,
        marshal: CallbackMarshal | None = None,
        event_logger: SpeechLogger | None = None,
    ) -> None:
        """Register engine callbacks and initialize per-utterance state."""

        self._engine = engine
        self._rules = tuple(rules)
        self._transformer = transformer or TextTransformer()
        self._on_highlight = on_highlight
        self._on_state_change = on_state_change
        self._event_logger = event_logger
        self._result: TransformResult | None = None
        self._cursor = NavigationCursor()
        self._restart_marker = RestartMarker()
        self._highlighting = False
        self._caret = 0
        self._selection_start = 0
        self._selection_length = 0
        self._generation = 0

        deliver = marshal.post if marshal is not None else _call_now

        def _progress(offset: int, character_count: int) -> None:
            deliver(self._progress_for_generation, self._generation, offset, character_count)

        def _completed() -> None:
            deliver(self._completed_for_generation, self._generation)

        engine.set_progress_handler(_progress)
        engine.set_completed_handler(_completed)

    @property
    def state(self) -> EngineState:
        """Current engine state."""

        return self._engine.state

    @property
    def cursor(self) -> NavigationCursor:
        """Navigation cursor for the current utterance."""

        return self._cursor

    @property
    def transform_result(self) -> TransformResult | None:
        """Spoken text and map of the most recent utterance."""

        return self._result

    @property
    def is_highlighting(self) -> bool:
        """Whether a highlighted (whole text or selection) utterance is active."""

        return self._highlighting

    @property
    def restart_pending(self) -> bool:
        """Whether a restart-induced stop is still expected from the engine."""

        return self._restart_marker.armed

    @property
    def current_written_position(self) -> int:
        """Written offset of the word currently being spoken."""

        return self._cursor.current_written_position

    def prepare(self, written: str) -> TransformResult:
        """Transform `written` for speech and reset the cursor to its start."""

        self._result = self._transformer.transform(written, self._rules)
        self._cursor.reset()
        if self._event_logger is not None:
            self._event_logger.log_transform(
                len(self._result.written),
                len(self._result.spoken),
                len(self._result.position_map),
            )
        return self._result

    def speak_all(self, written: str, caret: int = 0) -> TransformResult:
        """Speak the whole text with highlighting; `caret` is restored on stop."""

        self._cancel_for_new_utterance()
        self._highlighting = True
        self._caret = caret
        self._selection_start = 0
        self._selection_length = 0
        return self._begin(written)

    def speak_selection(self, written: str, start: int, length: int) -> TransformResult:
        """Speak `written[start:start + length]` with highlighting."""

        self._cancel_for_new_utterance()
        self._highlighting = True
        self._caret = start
        self._selection_start = start
        self._selection_length = length
        return self._begin(written[start : start + length])

    def speak_paragraph(self, text: str, caret: int) -> TransformResult | None:
        """Speak the paragraph typed just before `caret`, without highlighting."""

        start, paragraph = paragraph_before_caret(text, caret)
        if not paragraph:
            return None
        self._cancel_for_new_utterance()
        self._highlighting = False
        self._selection_start = start
        return self._begin(paragraph)

    def speak_word(self, text: str, caret: int) -> TransformResult | None:
        """Speak the word typed just before `caret` unless other speech is active."""

        if self._engine.state is not EngineState.READY:
            return None
        start, word = word_before_caret(text, caret)
        if not word:
            return None
        self._highlighting = False
        self._selection_start = start
        return self._begin(word)

    def speak_expansion(self, expansion: ShortcutExpansion) -> TransformResult | None:
        """Speak the text a shortcut expanded to unless other speech is active."""

        if self._engine.state is not EngineState.READY or not expansion.replacement_text.strip():
            return None
        self._highlighting = False
        self._selection_start = expansion.start
        return self._begin(expansion.replacement_text)

    def pause_or_resume(self) -> EngineState:
        """Pause active speech or resume paused speech; return the new state."""

        state = self._engine.state
        if state is EngineState.SPEAKING:
            self._engine.pause()
        elif state is EngineState.PAUSED:
            self._engine.resume()
        self._notify_state()
        return self._engine.state

    def stop(self) -> None:
        """Stop speech as a user action and restore the editor selection."""

        if self._engine.state is not EngineState.READY:
            self._restart_marker.arm()
            self._engine.cancel_all()
        self._generation += 1
        self._finish()

    def handle_progress(self, offset: int, character_count: int) -> None:
        """Translate an engine progress callback into a highlight request."""

        result = self._result
        prefix_length = self._engine.envelope.prefix_length
        if result is None or offset < prefix_length:
            return

        position_map = result.position_map
        spoken_offset = offset - prefix_length + self._cursor.spoken_restart_offset
        written_start = position_map.spoken_to_written(spoken_offset, self._cursor)
        entry = position_map.entry_at(self._cursor)
        if entry.kind.is_substitution:
            written_start = entry.written_start
            written_length = entry.written_length
        elif entry.kind is MappingKind.PLAIN:
            written_length = max(0, min(character_count, entry.written_end - written_start))
        else:
            written_length = 0

        self._cursor.current_written_position = written_start
        if self._highlighting:
            self._emit_highlight(written_start + self._selection_start, written_length)

    def handle_completed(self) -> None:
        """Handle the end of an utterance; restart-induced stops are swallowed once."""

        if self._restart_marker.consume():
            logger.debug("Ignoring completion of an utterance cancelled by restart.")
            return
        self._finish()

    def restart(self, written_offset: int, new_voice: str | None = None) -> int | None:
        """Restart highlighted speech at `written_offset`, optionally with a new voice.

        Offsets that are not on a spoken character move forward to the next word
        start. Returns the offset speech resumed from, or `None` when there was
        nothing left to speak (playback is stopped in that case).
        """

        result = self._result
        if result is None or written_offset >= len(result.written):
            self.stop()
            return None
        if not self._highlighting:
            return None

        if new_voice is not None:
            self._engine.select_voice(new_voice)
        previous_state = self._engine.state
        if previous_state is not EngineState.READY:
            self._restart_marker.arm()
        self._engine.cancel_all()
        self._generation += 1

        written = result.written
        offset = max(0, written_offset)
        if not is_spoken_char(written[offset]):
            offset = search_ahead_to_word_start(written, offset)
        if offset >= len(written):
            self._finish()
            return None

        spoken_offset, index = self._restart_point(result, offset)
        self._cursor.map_index = index
        self._cursor.written_restart_offset = offset
        self._cursor.spoken_restart_offset = spoken_offset
        self._cursor.current_written_position = offset
        self._engine.speak(result.spoken[spoken_offset:])

        if previous_state is EngineState.PAUSED:
            self._engine.pause()
            word_end = search_ahead_beyond_word_end(written, offset)
            self._emit_highlight(offset + self._selection_start, word_end - offset)
        self._notify_state()
        self._log("restart", written_offset=offset, spoken_offset=spoken_offset)
        return offset

    def skip_back(self, short_step: bool = False) -> int | None:
        """Move back about eight seconds of speech, at least two whole words.

        `short_step` is accepted for symmetry with `skip_ahead` but the backward
        distance is always the eight-second budget.
        """

        result = self._result
        if result is None or not self._highlighting:
            return None
        written = result.written
        budget = skip_budget(self._engine.rate, SKIP_BACK_SECONDS)
        initial = self._cursor.current_written_position
        running = search_back_to_before_word_start(written, initial)
        running = search_back_to_word_end(written, running)
        running = search_back_to_before_word_start(written, running)
        running = search_back_to_word_end(written, running)
        running = search_back_to_before_word_start(written, running)

        while running > 0 and initial - running < budget:
            running = search_back_to_word_end(written, running)
            running = search_back_to_before_word_start(written, running)

        target = search_ahead_to_word_start(written, running)
        self._log("skip", direction="back", short_step=short_step, target=target)
        self.restart(target)
        return target

    def skip_ahead(self, short_step: bool = False) -> int | None:
        """Move forward by whole sentences until 12 (or 3) seconds of speech are covered."""

        result = self._result
        if result is None or not self._highlighting:
            return None
        written = result.written
        seconds = SHORT_SKIP_AHEAD_SECONDS if short_step else SKIP_AHEAD_SECONDS
        budget = skip_budget(self._engine.rate, seconds)
        initial = self._cursor.current_written_position
        running = initial
        while running < len(written) and running - initial < budget:
            running = search_ahead_to_sentence_end(written, running)
            running = search_ahead_to_word_start(written, running)

        self._log("skip", direction="ahead", short_step=short_step, target=running)
        self.restart(running)
        return running

    def set_rate(self, rate: int) -> int:
        """Set the speech rate (clamped to -10..10) and restart highlighted speech."""

        rate = max(MIN_RATE, min(MAX_RATE, rate))
        self._engine.rate = rate
        if self._highlighting:
            self.restart(self._cursor.current_written_position)
        return rate

    def change_rate(self, delta: int) -> int:
        """Adjust the speech rate by `delta` steps."""

        return self.set_rate(self._engine.rate + delta)

    def set_volume(self, volume: int) -> int:
        """Set the volume (clamped to 0..100) and restart highlighted speech."""

        volume = max(MIN_VOLUME, min(MAX_VOLUME, volume))
        self._engine.volume = volume
        if self._highlighting:
            self.restart(self._cursor.current_written_position)
        return volume

    def select_voice(self, voice: str) -> None:
        """Switch voices; highlighted speech restarts at the current word."""

        result = self._result
        position = self._cursor.current_written_position
        if not self._highlighting:
            self._engine.select_voice(voice)
            return
        if result is None or position >= len(result.written):
            self.stop()
            self._engine.select_voice(voice)
            return
        self.restart(position, new_voice=voice)

    def _restart_point(self, result: TransformResult, written_offset: int) -> tuple[int, int]:
        """Return the spoken offset and entry index to resume speech from.

        Substituted words restart from the start of their replacement, and phoneme
        content restarts from its opening tag so the sliced markup stays balanced.
        """

        position_map = result.position_map
        spoken_offset, index = position_map.written_to_spoken(written_offset)
        if len(position_map) <= 1:
            return spoken_offset, index
        entry = position_map[index]
        if entry.kind.is_substitution:
            spoken_offset = entry.spoken_start
        if (
            entry.kind is MappingKind.PHONEME
            and index > 0
            and position_map[index - 1].kind is MappingKind.PHONEME_OVERHEAD
        ):
            index -= 1
            spoken_offset = position_map[index].spoken_start
        return spoken_offset, index

    def _begin(self, written: str) -> TransformResult:
        """Transform `written` and hand its spoken text to the engine."""

        result = self.prepare(written)
        self._generation += 1
        self._engine.speak(result.spoken)
        self._notify_state()
        self._log("start", written_chars=len(written), highlighting=self._highlighting)
        return result

    def _progress_for_generation(
        self, generation: int, offset: int, character_count: int
    ) -> None:
        """Forward progress unless it belongs to an utterance that was since replaced."""

        if generation != self._generation:
            return
        self.handle_progress(offset, character_count)

    def _completed_for_generation(self, generation: int) -> None:
        """Forward completion, or retire the marker when a replaced utterance ends."""

        if generation != self._generation:
            self._restart_marker.consume()
            logger.debug("Dropping completion of replaced utterance {}.", generation)
            return
        self.handle_completed()

    def _cancel_for_new_utterance(self) -> None:
        """Cancel current speech without treating it as a user stop."""

        if self._engine.state is not EngineState.READY:
            self._restart_marker.arm()
            self._engine.cancel_all()

    def _finish(self) -> None:
        """Return to the ready state and restore the pre-speech editor selection."""

        if self._highlighting:
            self._emit_highlight(self._caret, self._selection_length)
        self._caret = 0
        self._selection_start = 0
        self._selection_length = 0
        self._cursor.reset()
        self._highlighting = False
        self._notify_state()
        self._log("stop")

    def _emit_highlight(self, start: int, length: int) -> None:
        """Send a highlight request to the editor."""

        if self._on_highlight is not None:
            self._on_highlight(Highlight(start=start, length=length))

    def _notify_state(self) -> None:
        """Report the engine state to the editor."""

        if self._on_state_change is not None:
            self._on_state_change(self._engine.state)

    def _log(self, event: str, **context: object) -> None:
        """Emit a playback event when an event logger is attached."""

        if self._event_logger is not None:
            self._event_logger.log_playback(event, **context)
