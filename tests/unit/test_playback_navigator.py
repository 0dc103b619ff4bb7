"""Unit tests for playback navigation, highlighting, skips, and restarts."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from speechmap.errors import SpeechEngineError
from speechmap.models.datatypes import (
    Highlight,
    RuleKind,
    ShortcutExpansion,
    SubstitutionRule,
)
from speechmap.playback.dispatch import CallbackMarshal
from speechmap.playback.navigator import (
    PlaybackNavigator,
    RestartMarker,
    estimated_chars_per_second,
    skip_budget,
)
from speechmap.tts.engine import EngineState
from speechmap.tts.silent import SilentSpeechEngine

if TYPE_CHECKING:
    from tests.conftest import EditorRecorder

_COUNTING = "one two three four five six seven eight nine ten"
_LLAMA = SubstitutionRule(
    written_text="llama",
    pronounced_text="J AA M AX",
    kind=RuleKind.PHONEME,
    phoneme_alphabet="x-microsoft-ups",
)


def _advance_to(engine: SilentSpeechEngine, navigator: PlaybackNavigator, offset: int) -> None:
    """Step the engine until the navigator reports the word at `offset`."""

    while navigator.current_written_position < offset:
        assert engine.step()


def test_estimated_chars_per_second_follows_rate_curve() -> None:
    """Speed estimates should double roughly every seven rate steps."""

    assert estimated_chars_per_second(-1) == pytest.approx(11.3137, rel=1e-4)
    assert estimated_chars_per_second(0) == pytest.approx(12.5533, rel=1e-4)
    assert estimated_chars_per_second(-10) == pytest.approx(4.4383, rel=1e-4)


def test_skip_budget_rounds_to_whole_characters() -> None:
    """Budgets should be the rounded character count for the given seconds."""

    assert skip_budget(0, 8.0) == 100
    assert skip_budget(0, 12.0) == 151
    assert skip_budget(-10, 8.0) == 36
    assert skip_budget(-10, 3.0) == 13


def test_restart_marker_is_consumed_once() -> None:
    """The marker should read as armed exactly once after arming."""

    marker = RestartMarker()
    marker.arm()

    assert marker.armed is True
    assert marker.consume() is True
    assert marker.consume() is False


def test_speak_all_highlights_each_word_in_written_coordinates(
    silent_engine: SilentSpeechEngine, editor: EditorRecorder
) -> None:
    """Progress should map back to written offsets, covering whole substitutions."""

    navigator = PlaybackNavigator(
        silent_engine,
        [SubstitutionRule(written_text="Sequim", pronounced_text="Skwim")],
        on_highlight=editor.on_highlight,
        on_state_change=editor.on_state_change,
    )

    navigator.speak_all("I live in Sequim.")
    silent_engine.run_until_idle()

    assert silent_engine.spoken_payloads == ["I live in Skwim."]
    assert editor.highlights == [
        Highlight(0, 1),
        Highlight(2, 4),
        Highlight(7, 2),
        Highlight(10, 6),
        Highlight(0, 0),
    ]
    assert editor.states == [EngineState.SPEAKING, EngineState.READY]
    assert navigator.is_highlighting is False


def test_speak_selection_offsets_highlights_and_restores_selection(
    silent_engine: SilentSpeechEngine,
    navigator: PlaybackNavigator,
    editor: EditorRecorder,
) -> None:
    """Selection playback should shift highlights and restore the selection on stop."""

    navigator.speak_selection("Hello brave new world", 6, 9)
    silent_engine.run_until_idle()

    assert silent_engine.spoken_payloads == ["brave new"]
    assert editor.highlights == [Highlight(6, 5), Highlight(12, 3), Highlight(6, 9)]


def test_phoneme_content_highlights_written_word_and_skips_overhead(
    silent_engine: SilentSpeechEngine, editor: EditorRecorder
) -> None:
    """Phoneme substitutions should highlight the written word they replace."""

    navigator = PlaybackNavigator(silent_engine, [_LLAMA], on_highlight=editor.on_highlight)

    navigator.speak_all("a llama b")
    silent_engine.run_until_idle()

    assert editor.highlights == [Highlight(0, 1), Highlight(2, 5), Highlight(8, 1), Highlight(0, 0)]


def test_progress_inside_envelope_prefix_is_ignored(
    navigator: PlaybackNavigator, editor: EditorRecorder
) -> None:
    """Offsets that fall inside the envelope prefix should not highlight anything."""

    navigator.speak_all("one two")
    navigator.handle_progress(0, 3)

    assert editor.highlights == []


def test_skip_ahead_to_end_of_short_sentence_stops_without_speaking(
    silent_engine: SilentSpeechEngine,
    navigator: PlaybackNavigator,
    editor: EditorRecorder,
) -> None:
    """Skipping past the last sentence should stop playback instead of speaking again."""

    written = "The quick brown fox jumps over the dog."
    navigator.speak_all(written)
    silent_engine.step()

    target = navigator.skip_ahead()

    assert target == len(written)
    assert silent_engine.spoken_payloads == [written]
    assert navigator.state is EngineState.READY
    assert navigator.is_highlighting is False
    assert navigator.restart_pending is False
    assert editor.highlights[-1] == Highlight(0, 0)
    assert editor.states[-1] is EngineState.READY


def test_short_skip_ahead_moves_by_whole_sentences(
    silent_engine: SilentSpeechEngine,
    navigator: PlaybackNavigator,
    editor: EditorRecorder,
) -> None:
    """A short skip should advance sentence by sentence until three seconds are covered."""

    navigator.set_rate(-10)
    navigator.speak_all("Go now. Stop here. Then wait.")
    silent_engine.step()

    target = navigator.skip_ahead(short_step=True)

    assert target == 19
    assert silent_engine.spoken_payloads[-1] == "Then wait."
    assert navigator.cursor.spoken_restart_offset == 19
    assert navigator.state is EngineState.SPEAKING
    assert navigator.is_highlighting is True
    assert editor.highlights == [Highlight(0, 2)]

    silent_engine.run_until_idle()

    assert editor.highlights[1:] == [Highlight(19, 4), Highlight(24, 5), Highlight(0, 0)]


def test_skip_back_covers_budget_and_lands_on_word_start(
    silent_engine: SilentSpeechEngine, navigator: PlaybackNavigator
) -> None:
    """Skipping back should cover the time budget and restart on a word start."""

    navigator.set_rate(-10)
    navigator.speak_all(_COUNTING)
    _advance_to(silent_engine, navigator, 45)

    target = navigator.skip_back()

    assert target == 8
    assert silent_engine.spoken_payloads[-1] == "three four five six seven eight nine ten"
    assert navigator.current_written_position == 8


def test_skip_back_reaches_at_least_two_words_back(
    silent_engine: SilentSpeechEngine, navigator: PlaybackNavigator
) -> None:
    """Near the start of the text, skipping back should land on the first word."""

    navigator.speak_all("alpha beta gamma")
    _advance_to(silent_engine, navigator, 11)

    assert navigator.skip_back(short_step=True) == 0
    assert silent_engine.spoken_payloads[-1] == "alpha beta gamma"


def test_skip_while_paused_restarts_paused_and_highlights_target_word(
    silent_engine: SilentSpeechEngine,
    navigator: PlaybackNavigator,
    editor: EditorRecorder,
) -> None:
    """Restarting from a pause should stay paused and highlight the new word."""

    navigator.speak_all(_COUNTING)
    _advance_to(silent_engine, navigator, 8)
    assert navigator.pause_or_resume() is EngineState.PAUSED

    assert navigator.skip_back() == 0

    assert navigator.state is EngineState.PAUSED
    assert editor.highlights[-1] == Highlight(0, 3)
    assert editor.states[-1] is EngineState.PAUSED
    assert navigator.pause_or_resume() is EngineState.SPEAKING
    assert silent_engine.step()
    assert editor.highlights[-1] == Highlight(0, 3)


def test_restart_into_phoneme_starts_at_opening_tag(
    silent_engine: SilentSpeechEngine, editor: EditorRecorder
) -> None:
    """Restarting on a phoneme word should resend its whole tag."""

    navigator = PlaybackNavigator(silent_engine, [_LLAMA], on_highlight=editor.on_highlight)
    navigator.speak_all("I saw a llama today.")

    assert navigator.restart(8) == 8

    open_tag = '<phoneme alphabet="x-microsoft-ups" ph="J AA M AX">'
    assert silent_engine.spoken_payloads[-1] == f"{open_tag}llama</phoneme> today."
    silent_engine.run_until_idle()
    assert editor.highlights == [Highlight(8, 5), Highlight(14, 6), Highlight(0, 0)]


def test_restart_moves_forward_to_next_word_start(
    silent_engine: SilentSpeechEngine, navigator: PlaybackNavigator
) -> None:
    """Offsets on separators should restart at the following word."""

    navigator.speak_all("one, two")

    assert navigator.restart(3) == 5
    assert silent_engine.spoken_payloads[-1] == "two"


def test_restart_with_only_separators_left_stops(
    silent_engine: SilentSpeechEngine,
    navigator: PlaybackNavigator,
    editor: EditorRecorder,
) -> None:
    """Restarting where no word follows should stop playback."""

    navigator.speak_all("end...")

    assert navigator.restart(3) is None
    assert silent_engine.spoken_payloads == ["end..."]
    assert navigator.state is EngineState.READY
    assert editor.states[-1] is EngineState.READY


def test_restart_without_pending_text_stops(
    silent_engine: SilentSpeechEngine,
    navigator: PlaybackNavigator,
    editor: EditorRecorder,
) -> None:
    """Restarting before anything was spoken should perform a full stop."""

    assert navigator.restart(0) is None
    assert silent_engine.spoken_payloads == []
    assert editor.states == [EngineState.READY]


def test_restart_induced_cancel_is_swallowed_once_with_marshal(
    silent_engine: SilentSpeechEngine, editor: EditorRecorder
) -> None:
    """A marshaled completion from a restart should not stop the new utterance."""

    marshal = CallbackMarshal()
    navigator = PlaybackNavigator(
        silent_engine,
        on_highlight=editor.on_highlight,
        on_state_change=editor.on_state_change,
        marshal=marshal,
    )
    navigator.speak_all(_COUNTING)

    navigator.restart(4)

    assert navigator.restart_pending is True
    assert marshal.drain() == 1
    assert navigator.restart_pending is False
    assert navigator.is_highlighting is True
    assert EngineState.READY not in editor.states

    silent_engine.run_until_idle()
    marshal.drain()
    assert editor.states[-1] is EngineState.READY
    assert navigator.is_highlighting is False


def test_user_stop_restores_caret(
    silent_engine: SilentSpeechEngine,
    navigator: PlaybackNavigator,
    editor: EditorRecorder,
) -> None:
    """A user stop should cancel speech and restore the caret captured at start."""

    navigator.speak_all(_COUNTING, caret=5)
    silent_engine.step()

    navigator.stop()

    assert navigator.state is EngineState.READY
    assert editor.highlights[-1] == Highlight(5, 0)
    assert navigator.cursor.current_written_position == 0
    assert navigator.restart_pending is False
    assert silent_engine.run_until_idle() == 0


def test_rate_change_restarts_at_current_word(
    silent_engine: SilentSpeechEngine, navigator: PlaybackNavigator
) -> None:
    """Changing the rate during highlighted speech should restart at the current word."""

    navigator.speak_all("one two three")
    _advance_to(silent_engine, navigator, 4)

    assert navigator.set_rate(3) == 3
    assert silent_engine.rate == 3
    assert silent_engine.spoken_payloads[-1] == "two three"
    assert navigator.change_rate(20) == 10
    assert silent_engine.rate == 10


def test_volume_is_clamped_and_applied(
    silent_engine: SilentSpeechEngine, navigator: PlaybackNavigator
) -> None:
    """Volume changes should clamp to 0..100 and not speak while idle."""

    assert navigator.set_volume(150) == 100
    assert navigator.set_volume(-3) == 0
    assert silent_engine.volume == 0
    assert silent_engine.spoken_payloads == []


def test_select_voice_restarts_highlighted_speech_with_new_voice(
    silent_engine: SilentSpeechEngine, navigator: PlaybackNavigator
) -> None:
    """Voice changes during highlighted speech should restart at the current word."""

    navigator.speak_all("one two three")
    _advance_to(silent_engine, navigator, 8)

    navigator.select_voice("Other")

    assert silent_engine.voice == "Other"
    assert silent_engine.spoken_payloads[-1] == "three"


def test_select_voice_while_idle_only_switches_voice(
    silent_engine: SilentSpeechEngine, navigator: PlaybackNavigator
) -> None:
    """Idle voice changes should not speak."""

    navigator.select_voice("Other")

    assert silent_engine.voice == "Other"
    assert silent_engine.spoken_payloads == []
    with pytest.raises(SpeechEngineError):
        navigator.select_voice("Missing")


def test_speak_word_speaks_without_highlighting(
    silent_engine: SilentSpeechEngine,
    navigator: PlaybackNavigator,
    editor: EditorRecorder,
) -> None:
    """Typed words should be spoken without any highlight requests."""

    result = navigator.speak_word("hello big", 9)
    silent_engine.run_until_idle()

    assert result is not None
    assert silent_engine.spoken_payloads == [" big"]
    assert editor.highlights == []


def test_speak_word_is_ignored_while_speaking(
    silent_engine: SilentSpeechEngine, navigator: PlaybackNavigator
) -> None:
    """Typed words should not interrupt active speech."""

    navigator.speak_all(_COUNTING)

    assert navigator.speak_word("hello", 5) is None
    assert silent_engine.spoken_payloads == [_COUNTING]


def test_speak_expansion_speaks_replacement_text(
    silent_engine: SilentSpeechEngine,
    navigator: PlaybackNavigator,
    editor: EditorRecorder,
) -> None:
    """An expanded shortcut should be spoken as its replacement, without highlights."""

    result = navigator.speak_expansion(ShortcutExpansion(2, 3, "be right back"))
    silent_engine.run_until_idle()

    assert result is not None
    assert result.written == "be right back"
    assert silent_engine.spoken_payloads == ["be right back"]
    assert editor.highlights == []


def test_speak_expansion_skips_blank_replacements_and_active_speech(
    silent_engine: SilentSpeechEngine, navigator: PlaybackNavigator
) -> None:
    """Blank replacements are silent and expansions never interrupt active speech."""

    assert navigator.speak_expansion(ShortcutExpansion(0, 3, "  ")) is None
    navigator.speak_all(_COUNTING)

    assert navigator.speak_expansion(ShortcutExpansion(0, 3, "be right back")) is None
    assert silent_engine.spoken_payloads == [_COUNTING]


def test_speak_paragraph_replaces_active_speech(
    silent_engine: SilentSpeechEngine,
    navigator: PlaybackNavigator,
    editor: EditorRecorder,
) -> None:
    """A typed paragraph should cancel current speech without a user stop."""

    navigator.speak_all(_COUNTING)
    text = "First.\nSecond one."

    navigator.speak_paragraph(text, len(text))

    assert silent_engine.spoken_payloads[-1] == "\nSecond one."
    assert navigator.is_highlighting is False
    assert navigator.state is EngineState.SPEAKING
    assert EngineState.READY not in editor.states


def test_pause_or_resume_is_noop_when_ready(navigator: PlaybackNavigator) -> None:
    """Toggling with nothing playing should stay ready."""

    assert navigator.pause_or_resume() is EngineState.READY


def test_queued_progress_from_cancelled_utterance_is_dropped_after_restart(
    silent_engine: SilentSpeechEngine, editor: EditorRecorder
) -> None:
    """Callbacks queued before a restart should not move the new utterance's cursor."""

    marshal = CallbackMarshal()
    navigator = PlaybackNavigator(
        silent_engine,
        on_highlight=editor.on_highlight,
        marshal=marshal,
    )
    navigator.speak_all("one two three four five six seven")
    for _ in range(4):
        assert silent_engine.step()

    navigator.restart(4)
    marshal.drain()

    assert editor.highlights == []
    assert navigator.restart_pending is False
    assert navigator.current_written_position == 4

    assert silent_engine.step()
    marshal.drain()
    assert editor.highlights == [Highlight(4, 3)]
    assert navigator.current_written_position == 4


def test_queued_substitution_progress_does_not_shift_restarted_highlights(
    silent_engine: SilentSpeechEngine, editor: EditorRecorder
) -> None:
    """A restart to the first word should highlight it, not a later repeated word."""

    marshal = CallbackMarshal()
    navigator = PlaybackNavigator(
        silent_engine,
        [SubstitutionRule(written_text="Sequim", pronounced_text="Skwim")],
        on_highlight=editor.on_highlight,
        marshal=marshal,
    )
    navigator.speak_all("Sequim one Sequim two Sequim three")
    for _ in range(3):
        silent_engine.step()
    marshal.drain()
    for _ in range(2):
        silent_engine.step()
    editor.highlights.clear()

    navigator.restart(0)
    marshal.drain()
    silent_engine.step()
    marshal.drain()

    assert editor.highlights == [Highlight(0, 6)]


def test_natural_completion_queued_before_restart_does_not_stop_new_utterance(
    silent_engine: SilentSpeechEngine, editor: EditorRecorder
) -> None:
    """An end-of-speech callback still in the queue should not finish a restarted slice."""

    marshal = CallbackMarshal()
    navigator = PlaybackNavigator(
        silent_engine,
        on_highlight=editor.on_highlight,
        on_state_change=editor.on_state_change,
        marshal=marshal,
    )
    navigator.speak_all("one two")
    assert silent_engine.run_until_idle() == 3

    navigator.restart(4)
    marshal.drain()

    assert navigator.is_highlighting is True
    assert navigator.state is EngineState.SPEAKING
    assert editor.highlights == []

    silent_engine.run_until_idle()
    marshal.drain()
    assert editor.highlights == [Highlight(4, 3), Highlight(0, 0)]
    assert navigator.is_highlighting is False


def test_plain_highlight_is_clamped_to_its_written_entry(
    silent_engine: SilentSpeechEngine, editor: EditorRecorder
) -> None:
    """An engine word that runs into a substitution should not highlight past the plain text."""

    navigator = PlaybackNavigator(
        silent_engine,
        [SubstitutionRule(written_text="B", pronounced_text="Bee", whole_word=False)],
        on_highlight=editor.on_highlight,
    )

    navigator.speak_all("a_$B")
    silent_engine.step()

    assert navigator.transform_result is not None
    assert navigator.transform_result.spoken == "a_$Bee"
    assert editor.highlights == [Highlight(0, 3)]


def test_failed_voice_change_keeps_current_speech(
    silent_engine: SilentSpeechEngine, navigator: PlaybackNavigator
) -> None:
    """Selecting a missing voice mid-speech should raise without cancelling playback."""

    navigator.speak_all("one two three")
    _advance_to(silent_engine, navigator, 4)

    with pytest.raises(SpeechEngineError):
        navigator.select_voice("Missing")

    assert navigator.state is EngineState.SPEAKING
    assert navigator.is_highlighting is True
    assert navigator.restart_pending is False
    assert silent_engine.spoken_payloads == ["one two three"]
    assert silent_engine.voice == "Silent"
