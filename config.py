"""Configuration from environment variables with defaults.

Command-line flags in fm_radio.py override these; the values here are only
the defaults the CLI falls back to.
"""

import os


def _int(val, default):
    try:
        return int(val)
    except (TypeError, ValueError):
        return default


def _float(val, default):
    try:
        return float(val)
    except (TypeError, ValueError):
        return default


def parse_frequency_mhz(freq_str: str) -> float:
    """Convert a frequency string like '100.6', '100.6M' or '100600000' to MHz.

    Raises ValueError if the string is not a number.
    """
    s = freq_str.strip().upper()
    if s.endswith("M"):
        return float(s[:-1])
    if s.endswith("K"):
        return float(s[:-1]) / 1_000
    value = float(s)
    # Values above 1000 are raw Hz
    if value > 1_000:
        return value / 1_000_000
    return value


# Transmitter
_freq_raw = os.environ.get("FM_FREQUENCY", "").strip()
try:
    FM_FREQUENCY = parse_frequency_mhz(_freq_raw) if _freq_raw else None
except ValueError:
    FM_FREQUENCY = None
FM_TRANSMITTER_PATH = os.environ.get("FM_TRANSMITTER_PATH", "fm_transmitter")

# Decoder
FFMPEG_PATH = os.environ.get("FFMPEG_PATH", "ffmpeg")

# PCM format sent to fm_transmitter (s16le is fixed, see track_decoder.py)
SAMPLE_RATE = _int(os.environ.get("SAMPLE_RATE"), 44_100)
CHANNELS = _int(os.environ.get("CHANNELS"), 1)
BITS_PER_SAMPLE = 16

# 32 KiB ≈ 370 ms of 44.1 kHz mono s16le
DECODE_CHUNK_SIZE = _int(os.environ.get("DECODE_CHUNK_SIZE"), 32_768)

# Seconds to wait after SIGTERM before sending SIGKILL to a child
TERMINATE_TIMEOUT = _float(os.environ.get("TERMINATE_TIMEOUT"), 3.0)

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
