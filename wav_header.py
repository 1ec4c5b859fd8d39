"""Streaming WAV header — 44-byte RIFF/WAVE header with unknown length.

The playlist is decoded on the fly, so the total PCM size is not known when
the header goes out.  Both size fields are set to 0xFFFFFFFF, which
fm_transmitter (and most WAV readers) treat as "read until EOF".

Layout (all integers little-endian):
   0  "RIFF"        4  chunk size        8  "WAVE"
  12  "fmt "       16  fmt size (16)    20  format (1 = PCM)
  22  channels     24  sample rate      28  byte rate
  32  block align  34  bits/sample      36  "data"      40  data size
"""

import numpy as np

HEADER_SIZE = 44
UNKNOWN_SIZE = 0xFFFFFFFF

_HEADER_DTYPE = np.dtype([
    ("chunk_id", "S4"),
    ("chunk_size", "<u4"),
    ("format", "S4"),
    ("subchunk1_id", "S4"),
    ("subchunk1_size", "<u4"),
    ("audio_format", "<u2"),
    ("channels", "<u2"),
    ("sample_rate", "<u4"),
    ("byte_rate", "<u4"),
    ("block_align", "<u2"),
    ("bits_per_sample", "<u2"),
    ("subchunk2_id", "S4"),
    ("subchunk2_size", "<u4"),
])


def build_wav_header(sample_rate: int, channels: int, bits_per_sample: int) -> bytes:
    """Return the 44-byte streaming header for the given PCM format.

    Inputs must be positive; StreamConfiguration.validate() checks that
    before a session starts.
    """
    byte_rate = sample_rate * channels * bits_per_sample // 8
    block_align = channels * bits_per_sample // 8

    header = np.zeros(1, dtype=_HEADER_DTYPE)
    header["chunk_id"] = b"RIFF"
    header["chunk_size"] = UNKNOWN_SIZE
    header["format"] = b"WAVE"
    header["subchunk1_id"] = b"fmt "
    header["subchunk1_size"] = 16
    header["audio_format"] = 1
    header["channels"] = channels
    header["sample_rate"] = sample_rate
    header["byte_rate"] = byte_rate
    header["block_align"] = block_align
    header["bits_per_sample"] = bits_per_sample
    header["subchunk2_id"] = b"data"
    header["subchunk2_size"] = UNKNOWN_SIZE
    return header.tobytes()
