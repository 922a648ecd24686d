"""
Global Configuration for the Morse player.
Centralizing all parameters to ensure consistency across timing,
tone synthesis, playback and call sign generation.
"""
import string

# Timing Parameters
PARIS_UNITS = 50        # Units in the standard word "PARIS " (1 WPM = 50 units per minute)
DEFAULT_WPM = 5         # Default speed in words per minute

# Audio / DSP Parameters
SAMPLE_RATE = 44100     # Output sample rate (Hz)
DEFAULT_FREQUENCY = 750.0  # Tone frequency (Hz)
DEFAULT_VOLUME = 1.0    # 0.0 - 1.0
DEFAULT_SHAPE = 'sine'
WAVEFORMS = ('sine', 'square', 'sawtooth', 'triangle')
RISE_TIME = 0.005       # Raised-cosine rise/fall to avoid key clicks (sec)
BLOCK_SIZE = 256        # Frames per sounddevice callback

# Call Sign Parameters
CALLSIGN_LETTERS = string.ascii_uppercase
CALLSIGN_DIGITS = string.digits

# Call sign formats with an associated weight.
# L = letter, N = digit, '/' is output literally.
# If bucket A has weight 10 and B has weight 1, A is drawn ten times for every B.
# Buckets MUST be sorted ascending by weight (checked at import in callsign.py).
CALLSIGN_FORMATS = (
    (5, (
        'LNNL',
        'NL/LNLL',
        'NL/LLNLL',
        'NL/LLNLLL',
        'LLN/LNLL',
        'LLN/LLNL',
        'LLN/LLNLL',
        'LLN/LLNLLL',
        'LL/LLNL',
        'LL/LLNLL',
        'LLNNLLL',
    )),
    (10, (
        'NLNL',
        'NLNLL',
        'NLNLLL',
    )),
    (85, (
        'LNL',
        'LNLL',
        'LNLLL',
        'LLNL',
        'LLNL',  # Listed twice on purpose: doubles its share within the bucket
        'LLNLL',
        'LLNLLL',
    )),
)
