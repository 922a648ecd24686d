"""
Tone Player module.
Synthesizes single tones and plays them on an audio sink with cancellation.
The sink is the only part that touches audio hardware; play_tone() owns the
settle-exactly-once logic around it.
"""

import asyncio
import logging
import math
import numbers
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np
import scipy.io.wavfile
import scipy.signal

import config
from cancellation import Cancelled, CancellationToken
from errors import InvalidArgument

logger = logging.getLogger(__name__)


def validate_tone(frequency: float, shape: str, millis: float, volume: float) -> None:
    """Raise InvalidArgument for tone parameters no sink can play."""
    if not isinstance(frequency, numbers.Real) or not math.isfinite(frequency) or frequency <= 0:
        raise InvalidArgument(f"Frequency must be a positive number of hertz, got {frequency!r}")
    if shape not in config.WAVEFORMS:
        raise InvalidArgument(f"Unknown waveform shape {shape!r}, expected one of {config.WAVEFORMS}")
    if not isinstance(millis, numbers.Real) or not math.isfinite(millis) or millis < 0:
        raise InvalidArgument(f"Duration must be a non-negative number of milliseconds, got {millis!r}")
    if not isinstance(volume, numbers.Real) or not 0.0 <= volume <= 1.0:
        raise InvalidArgument(f"Volume must be between 0 and 1, got {volume!r}")


def synthesize_tone(frequency: float, shape: str, seconds: float, volume: float,
                    sample_rate: int = config.SAMPLE_RATE, rise_time: float = config.RISE_TIME) -> np.ndarray:
    """
    Render one tone as float32 samples in [-volume, volume].
    """
    num_samples = int(round(seconds * sample_rate))
    t = np.arange(num_samples) / sample_rate
    phase = 2 * np.pi * frequency * t
    if shape == 'sine':
        sig = np.sin(phase)
    elif shape == 'square':
        sig = scipy.signal.square(phase)
    elif shape == 'sawtooth':
        sig = scipy.signal.sawtooth(phase)
    elif shape == 'triangle':
        sig = scipy.signal.sawtooth(phase, width=0.5)
    else:
        raise InvalidArgument(f"Unknown waveform shape {shape!r}")

    # Apply envelope (rise/fall) to avoid clicks
    envelope = np.ones(num_samples)
    n_rise = int(rise_time * sample_rate)
    if n_rise * 2 > num_samples:
        n_rise = num_samples // 2
    if n_rise > 0:
        rise = 0.5 * (1 - np.cos(np.pi * np.arange(n_rise) / n_rise))
        envelope[:n_rise] = rise
        envelope[-n_rise:] = rise[::-1]

    return (sig * envelope * volume).astype(np.float32)


class ToneHandle:
    """A sounding tone. stop() silences it immediately and may be called more than once."""

    def stop(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class AudioSink:
    """
    Something that can sound a tone.
    `on_ended` must be called exactly once, when the tone finishes or after stop().
    It may be called from any thread.
    """

    def start_tone(self, frequency: float, shape: str, seconds: float, volume: float,
                   on_ended: Callable[[], None]) -> ToneHandle:
        raise NotImplementedError


class _StreamTone(ToneHandle):
    def __init__(self, stream):
        self.stream = stream
        self.stopped = False

    def stop(self):
        if self.stopped:
            return
        self.stopped = True
        if self.stream.active:
            self.stream.abort()

    def close(self):
        self.stream.close()


class SoundDeviceSink(AudioSink):
    """Plays tones on an output device through PortAudio."""

    def __init__(self, device: Optional[int] = None, sample_rate: int = config.SAMPLE_RATE):
        # PortAudio is loaded on import, so only pay for it when a device sink is requested
        import sounddevice as sd
        self._sd = sd
        self.device = device
        self.sample_rate = sample_rate

    def start_tone(self, frequency, shape, seconds, volume, on_ended):
        samples = synthesize_tone(frequency, shape, seconds, volume, sample_rate=self.sample_rate)
        position = 0

        def callback(outdata, frames, time_info, status):
            nonlocal position
            chunk = samples[position:position + frames]
            outdata[:len(chunk), 0] = chunk
            outdata[len(chunk):, 0] = 0
            position += frames
            if position >= len(samples):
                raise self._sd.CallbackStop()

        stream = self._sd.OutputStream(
            samplerate=self.sample_rate,
            device=self.device,
            channels=1,
            dtype='float32',
            blocksize=config.BLOCK_SIZE,
            callback=callback,
            finished_callback=on_ended,
        )
        stream.start()
        return _StreamTone(stream)


@dataclass
class RecordedTone:
    frequency: float
    shape: str
    seconds: float
    volume: float
    start: float
    end: Optional[float] = None
    stopped: bool = False


class _RecordedHandle(ToneHandle):
    def __init__(self, tone: RecordedTone, loop, timer, on_ended):
        self.tone = tone
        self.loop = loop
        self.timer = timer
        self.on_ended = on_ended

    def finish(self):
        if self.tone.end is not None:
            return
        self.tone.end = self.loop.time()
        self.on_ended()

    def stop(self):
        if self.tone.end is not None:
            return
        self.timer.cancel()
        self.tone.stopped = True
        self.finish()


class RecordingSink(AudioSink):
    """
    Renders tones into memory against the event loop clock instead of a device.
    Must be driven from inside a running event loop.
    """

    def __init__(self, sample_rate: int = config.SAMPLE_RATE):
        self.sample_rate = sample_rate
        self.tones: List[RecordedTone] = []

    def start_tone(self, frequency, shape, seconds, volume, on_ended):
        loop = asyncio.get_running_loop()
        tone = RecordedTone(frequency, shape, seconds, volume, start=loop.time())
        self.tones.append(tone)
        handle = _RecordedHandle(tone, loop, None, on_ended)
        handle.timer = loop.call_later(seconds, handle.finish)
        return handle

    @property
    def active(self) -> bool:
        return any(tone.end is None for tone in self.tones)

    def to_waveform(self) -> np.ndarray:
        """Mix every recorded tone, with the silences between them, starting at the first tone."""
        if not self.tones:
            return np.zeros(0, dtype=np.float32)
        origin = self.tones[0].start
        total_end = max((tone.end if tone.end is not None else tone.start + tone.seconds) for tone in self.tones)
        waveform = np.zeros(int(round((total_end - origin) * self.sample_rate)), dtype=np.float32)

        for tone in self.tones:
            end = tone.end if tone.end is not None else tone.start + tone.seconds
            sounded = min(tone.seconds, end - tone.start)
            sig = synthesize_tone(tone.frequency, tone.shape, sounded, tone.volume, sample_rate=self.sample_rate)
            start_sample = int(round((tone.start - origin) * self.sample_rate))
            end_sample = min(start_sample + len(sig), len(waveform))
            waveform[start_sample:end_sample] += sig[:end_sample - start_sample]

        return np.clip(waveform, -1.0, 1.0)

    def write_wav(self, path: str) -> None:
        waveform = self.to_waveform()
        scipy.io.wavfile.write(path, self.sample_rate, (waveform * 32767).astype(np.int16))
        logger.info("Saved %d tones (%.2f sec) to %s", len(self.tones), len(waveform) / self.sample_rate, path)


async def play_tone(sink: AudioSink, token: CancellationToken, frequency: float,
                    shape: str, millis: float, volume: float) -> None:
    """
    Play one tone on `sink` and wait for it to finish.
    Raises Cancelled if `token` fires before or during the tone; a sounding tone
    is stopped rather than left to finish.
    """
    token.check()
    validate_tone(frequency, shape, millis, volume)

    seconds = millis / 1000
    logger.debug("Playing tone %s", {'frequency': frequency, 'shape': shape, 'seconds': seconds, 'volume': volume})

    loop = asyncio.get_running_loop()
    future = loop.create_future()
    finished = False

    def ended():
        nonlocal finished
        finished = True
        if future.done():
            return
        if token.is_signaled():
            future.set_exception(Cancelled(token.reason))
        else:
            logger.debug("Tone play ended")
            future.set_result(None)

    def abort():
        if future.done():
            return
        handle.stop()
        future.set_exception(Cancelled(token.reason))

    handle = sink.start_tone(frequency, shape, seconds, volume,
                             on_ended=lambda: loop.call_soon_threadsafe(ended))
    remove = token.on_signaled(abort)
    try:
        await future
    finally:
        remove()
        if not finished:
            handle.stop()
        handle.close()
