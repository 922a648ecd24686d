import argparse
import asyncio
import logging
import signal
import sys
from itertools import islice

import config
from callsign import generate_callsigns
from cancellation import Cancelled, CancellationToken
from errors import InvalidArgument
from morse import PlaybackRequest, morse_duration_millis, play_morse_text
from tone import RecordingSink, SoundDeviceSink


def print_character(event):
    """Echo each character as it starts playing."""
    print(event.char, end="", flush=True)


async def run(args, token: CancellationToken):
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.signal, "Interrupted")
    except NotImplementedError:
        # Windows: asyncio.run() turns Ctrl-C into task cancellation instead
        pass

    if args.callsigns:
        text = " ".join(islice(generate_callsigns(), args.callsigns))
        if args.print_only:
            print(text)
            return
    else:
        text = " ".join(args.text)

    sink = RecordingSink() if args.wav else SoundDeviceSink(device=args.device)
    print(f"Playing at {args.wpm} WPM ({morse_duration_millis(text, args.wpm) / 1000:.1f} sec)")

    await play_morse_text(PlaybackRequest(
        sink=sink,
        text=text,
        token=token,
        speed=args.wpm,
        frequency=args.frequency,
        volume=args.volume,
        shape=args.shape,
        observer=print_character,
    ))
    print()

    if args.wav:
        sink.write_wav(args.wav)
        print(f"Saved to {args.wav}")


def main():
    parser = argparse.ArgumentParser(description="Play text as Morse code")
    parser.add_argument("text", nargs="*", help="Text to play")
    parser.add_argument("--wpm", type=float, default=config.DEFAULT_WPM, help="Speed in words per minute")
    parser.add_argument("--frequency", type=float, default=config.DEFAULT_FREQUENCY, help="Tone frequency in Hz")
    parser.add_argument("--volume", type=float, default=config.DEFAULT_VOLUME, help="Volume (0-1)")
    parser.add_argument("--shape", choices=config.WAVEFORMS, default=config.DEFAULT_SHAPE, help="Waveform shape")
    parser.add_argument("--device", type=int, default=None, help="Output device index (see python -m sounddevice)")
    parser.add_argument("--wav", type=str, help="Render to this .wav file instead of the speakers")
    parser.add_argument("--callsigns", type=int, default=0, help="Play N random call signs instead of text")
    parser.add_argument("--print-only", action="store_true", help="With --callsigns, print them without playing")
    parser.add_argument("--verbose", action="store_true", help="Show debug logs")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if not args.text and not args.callsigns:
        parser.error("Give some text to play, or --callsigns N.")

    token = CancellationToken()
    try:
        asyncio.run(run(args, token))
    except InvalidArgument as e:
        print(f"Error: {e}")
        sys.exit(2)
    except (Cancelled, KeyboardInterrupt):
        print("\nCancelled.")
        sys.exit(130)


if __name__ == "__main__":
    main()
