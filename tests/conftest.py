import asyncio

import pytest

from tone import AudioSink, ToneHandle


class FakeTone(ToneHandle):
    def __init__(self, on_ended):
        self.on_ended = on_ended
        self.timer = None
        self.done = False
        self.stopped = False
        self.stop_calls = 0
        self.closed = False

    def finish(self):
        if self.done:
            return
        self.done = True
        self.on_ended()

    def stop(self):
        self.stop_calls += 1
        if self.done:
            return
        self.stopped = True
        if self.timer is not None:
            self.timer.cancel()
        self.finish()

    def close(self):
        self.closed = True


class FakeSink(AudioSink):
    """
    Records tones into `events`. With instant=True tones end on the next loop
    iteration, otherwise after their real duration.
    """

    def __init__(self, instant=True, events=None):
        self.instant = instant
        self.events = events if events is not None else []
        self.started = []
        self.handles = []

    def start_tone(self, frequency, shape, seconds, volume, on_ended):
        loop = asyncio.get_running_loop()
        self.started.append({'frequency': frequency, 'shape': shape, 'seconds': seconds, 'volume': volume})
        self.events.append(('tone', round(seconds * 1000, 6)))
        handle = FakeTone(on_ended)
        if self.instant:
            handle.timer = loop.call_soon(handle.finish)
        else:
            handle.timer = loop.call_later(seconds, handle.finish)
        self.handles.append(handle)
        return handle


@pytest.fixture
def fake_sink():
    return FakeSink()
