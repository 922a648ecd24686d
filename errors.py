"""Error types raised by the Morse player and call sign generator."""


class InvalidArgument(ValueError):
    """Raised for a speed, frequency, volume or waveform that cannot be played."""


class InvalidFormat(ValueError):
    """Raised when a call sign format table entry is malformed."""
