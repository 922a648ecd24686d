"""
Morse playback module.
Translates text to dit/dah strings, derives the PARIS timing for a speed and
plays the result tone by tone through tone.play_tone().
"""

import logging
import math
import numbers
import re
from dataclasses import dataclass
from typing import Callable, List, Optional

import config
from cancellation import CancellationToken, sleep
from errors import InvalidArgument
from tone import AudioSink, SoundDeviceSink, play_tone, validate_tone

logger = logging.getLogger(__name__)

# Morse Code Definition
# Hyphen (-) for dah, period (.) for dit, in transmission order.
MORSE_DICT = {
    'A': '.-', 'B': '-...', 'C': '-.-.', 'D': '-..', 'E': '.', 'F': '..-.',
    'G': '--.', 'H': '....', 'I': '..', 'J': '.---', 'K': '-.-', 'L': '.-..',
    'M': '--', 'N': '-.', 'O': '---', 'P': '.--.', 'Q': '--.-', 'R': '.-.',
    'S': '...', 'T': '-', 'U': '..-', 'V': '...-', 'W': '.--', 'X': '-..-',
    'Y': '-.--', 'Z': '--..', '1': '.----', '2': '..---', '3': '...--',
    '4': '....-', '5': '.....', '6': '-....', '7': '--...', '8': '---..',
    '9': '----.', '0': '-----', '.': '.-.-.-', ',': '--..--', '?': '..--..',
    "'": '.----.', '!': '-.-.--', '/': '-..-.',
}

WORD_SEPARATOR = ' '
_WHITESPACE = re.compile(r'\s+')


@dataclass(frozen=True)
class TimingProfile:
    wpm: float
    unit_millis: float
    dit_millis: float
    dah_millis: float
    intra_char_pause_millis: float
    inter_char_pause_millis: float
    inter_word_pause_millis: float


@dataclass(frozen=True)
class CharacterEvent:
    """What the observer is told before a character's tones or pause begin."""
    text: str
    morse_text: List[str]
    char_index: int
    char: str
    morse_char: str


@dataclass(frozen=True)
class PlaybackRequest:
    sink: AudioSink
    text: str
    token: CancellationToken
    speed: float = config.DEFAULT_WPM
    frequency: float = config.DEFAULT_FREQUENCY
    volume: float = config.DEFAULT_VOLUME
    shape: str = config.DEFAULT_SHAPE
    observer: Optional[Callable[[CharacterEvent], None]] = None


def compute_timing_profile(wpm: float) -> TimingProfile:
    """
    Standard PARIS timing: one unit is 60000 / (50 * wpm) milliseconds.
    """
    if isinstance(wpm, bool) or not isinstance(wpm, numbers.Real) or not math.isfinite(wpm) or wpm <= 0:
        raise InvalidArgument(f"Speed must be a positive number of words per minute, got {wpm!r}")

    unit = 60000 / (config.PARIS_UNITS * wpm)
    return TimingProfile(
        wpm=wpm,
        unit_millis=unit,
        dit_millis=unit,
        dah_millis=unit * 3,
        intra_char_pause_millis=unit,
        inter_char_pause_millis=unit * 3,
        inter_word_pause_millis=unit * 7,
    )


def translate_morse(text: str, unknown_char: str = '') -> List[str]:
    """
    Translate each character of `text` into its dit/dah string.
    The result has one entry per character; characters without a Morse
    equivalent get `unknown_char`. Lookup is case sensitive, upper case the
    text first.

        translate_morse('ABC')  # ['.-', '-...', '-.-.']
    """
    logger.debug("Translating morse %s", {'text': text, 'unknown_char': unknown_char})
    morse = [MORSE_DICT.get(ch, unknown_char) for ch in text]
    logger.info("Translated morse %s", {'text': text, 'morse': morse})
    return morse


def normalize_text(text: str) -> str:
    """Upper case, trim, and collapse each run of whitespace into one word separator."""
    return _WHITESPACE.sub(WORD_SEPARATOR, text.upper().strip())


def morse_duration_millis(text: str, wpm: float) -> float:
    """
    Total time play_morse_text() spends on `text`, tones and pauses included.
    """
    timing = compute_timing_profile(wpm)
    text = normalize_text(text)

    total = 0.0
    inside_word = False
    for char, morse_char in zip(text, translate_morse(text)):
        if char == WORD_SEPARATOR:
            inside_word = False
            total += timing.inter_word_pause_millis
        elif morse_char:
            if inside_word:
                total += timing.inter_char_pause_millis
            inside_word = True
            total += sum(timing.dit_millis if unit == '.' else timing.dah_millis for unit in morse_char)
            total += timing.intra_char_pause_millis * (len(morse_char) - 1)
    return total


async def play_morse_text(request: PlaybackRequest) -> None:
    """
    Play `request.text` as Morse tones.

    The text is upper cased, trimmed and every group of whitespace becomes a
    single space (a word gap). Characters with no Morse equivalent are
    skipped silently and do not end the current word.

    `request.observer` is called synchronously with a CharacterEvent before
    each character is played. It is not awaited and must not block.

    Raises InvalidArgument for a bad speed or tone parameter before anything
    is played, and Cancelled when `request.token` fires. No tone is left
    sounding and no timer left pending when either propagates.
    """
    timing = compute_timing_profile(request.speed)
    validate_tone(request.frequency, request.shape, timing.dit_millis, request.volume)

    text = normalize_text(request.text)
    morse_text = translate_morse(text)
    token = request.token

    logger.info("Playing morse tones %s", {
        'text': text, 'morse_text': morse_text, 'speed': request.speed,
        'frequency': request.frequency, 'volume': request.volume,
    })

    inside_word = False

    for char_index, (char, morse_char) in enumerate(zip(text, morse_text)):
        if request.observer is not None:
            request.observer(CharacterEvent(text, morse_text, char_index, char, morse_char))

        if char == WORD_SEPARATOR:
            inside_word = False
            logger.debug("Pausing between words %s", {'millis': timing.inter_word_pause_millis})
            await sleep(timing.inter_word_pause_millis, token)
        elif morse_char:
            if inside_word:
                logger.debug("Pausing between characters %s", {'millis': timing.inter_char_pause_millis})
                await sleep(timing.inter_char_pause_millis, token)

            inside_word = True

            logger.debug("Playing morse character tones %s",
                         {'char_index': char_index, 'char': char, 'morse_char': morse_char})

            for unit_index, unit in enumerate(morse_char):
                if unit_index > 0:
                    await sleep(timing.intra_char_pause_millis, token)

                await play_tone(
                    request.sink,
                    token,
                    frequency=request.frequency,
                    shape=request.shape,
                    millis=timing.dit_millis if unit == '.' else timing.dah_millis,
                    volume=request.volume,
                )

    logger.info("Playing morse tones complete")


class MorsePlayer:
    """
    Keeps speed and tone settings between plays and lets another task stop
    the current play. The sink is created on first use.
    """

    def __init__(self, wpm: float = config.DEFAULT_WPM, frequency: float = config.DEFAULT_FREQUENCY,
                 volume: float = config.DEFAULT_VOLUME, shape: str = config.DEFAULT_SHAPE,
                 sink_factory: Callable[[], AudioSink] = SoundDeviceSink):
        self.frequency = frequency
        self.volume = volume
        self.shape = shape
        self.wpm = wpm
        self._sink_factory = sink_factory
        self._sink: Optional[AudioSink] = None
        self._token: Optional[CancellationToken] = None

    @property
    def wpm(self) -> float:
        return self._timing.wpm

    @wpm.setter
    def wpm(self, value: float):
        self._timing = compute_timing_profile(value)

    @property
    def timing(self) -> TimingProfile:
        return self._timing

    @property
    def playing(self) -> bool:
        return self._token is not None

    @property
    def sink(self) -> AudioSink:
        if self._sink is None:
            self._sink = self._sink_factory()
        return self._sink

    async def play(self, text: str, observer: Optional[Callable[[CharacterEvent], None]] = None) -> None:
        token = CancellationToken()
        self.stop("Superseded by a new play")
        self._token = token
        try:
            await play_morse_text(PlaybackRequest(
                sink=self.sink,
                text=text,
                token=token,
                speed=self.wpm,
                frequency=self.frequency,
                volume=self.volume,
                shape=self.shape,
                observer=observer,
            ))
        finally:
            if self._token is token:
                self._token = None

    def stop(self, reason: Optional[str] = None) -> None:
        if self._token is not None:
            self._token.signal(reason)
