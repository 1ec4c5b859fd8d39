"""Playlist streamer — decodes a playlist into one WAV stream for fm_transmitter.

    ffmpeg track 1 ┐
    ffmpeg track 2 ├─(stdout=PCM)→ Python → os.pipe() → fm_transmitter (stdin)
    ffmpeg track N ┘                  ↑
                              44-byte WAV header first

Two units of work run at the same time:
  * a supervising thread blocked on fm_transmitter's exit (consumer.py)
  * this thread, decoding tracks one after another and writing to the pipe

Closing the write end is the only end-of-stream signal: the transmitter
sees EOF and exits on its own.  A decode or write failure stops the
playlist, closes the pipe and still waits for the transmitter before the
error is raised.
"""

import logging
import os
import shutil
from dataclasses import dataclass
from typing import Optional

import config
import pipe_bridge
from consumer import ConsumerProcess
from errors import ConfigurationError, ConsumerError, DecoderError, ResourceError, StreamError
from track_decoder import TrackDecoder
from wav_header import build_wav_header

log = logging.getLogger("fm-radio")


@dataclass(frozen=True)
class StreamConfiguration:
    """Everything a session needs; fixed for the session's duration."""

    frequency_mhz: float
    sample_rate: int = config.SAMPLE_RATE
    channels: int = config.CHANNELS
    bits_per_sample: int = config.BITS_PER_SAMPLE
    ffmpeg_path: str = config.FFMPEG_PATH
    transmitter_path: str = config.FM_TRANSMITTER_PATH
    chunk_size: int = config.DECODE_CHUNK_SIZE

    def validate(self):
        """Raise ConfigurationError if any value is unusable."""
        if self.frequency_mhz is None or self.frequency_mhz <= 0:
            raise ConfigurationError(f"Invalid frequency: {self.frequency_mhz}")
        if self.sample_rate <= 0:
            raise ConfigurationError(f"Invalid sample rate: {self.sample_rate}")
        if self.channels <= 0:
            raise ConfigurationError(f"Invalid channel count: {self.channels}")
        # ffmpeg is always asked for s16le, so the header must say 16
        if self.bits_per_sample != 16:
            raise ConfigurationError(
                f"Unsupported bits per sample: {self.bits_per_sample} (only 16)")
        if self.chunk_size <= 0:
            raise ConfigurationError(f"Invalid chunk size: {self.chunk_size}")


@dataclass
class SessionOutcome:
    """Result of one session, filled in as the session progresses."""

    consumer_exit_code: Optional[int] = None
    decode_error: Optional[StreamError] = None  # first DecoderError/ResourceError
    tracks_streamed: int = 0
    pcm_bytes: int = 0


def _check_executables(configuration):
    for name in (configuration.transmitter_path, configuration.ffmpeg_path):
        if shutil.which(name) is None:
            raise ConfigurationError(f"Binary not found: {name}")


def _start_consumer(consumer):
    """Create the pipe, hand its read end to the transmitter, return write fd."""
    read_fd, write_fd = pipe_bridge.acquire()
    try:
        with pipe_bridge.bind_as_input(read_fd):
            os.close(read_fd)
            read_fd = None
            consumer.start()
    except BaseException:
        if read_fd is not None:
            os.close(read_fd)
        os.close(write_fd)
        if consumer.pid is not None:
            # stdin restore failed after the spawn; reap the transmitter (it sees EOF)
            consumer.join()
        raise
    return write_fd


def _close_sink(sink, outcome):
    try:
        sink.close()
    except OSError as e:
        log.warning("Error closing stream pipe: %s", e)
        if outcome.decode_error is None:
            outcome.decode_error = ResourceError(e.strerror or str(e))


def _reconcile(outcome):
    if outcome.decode_error is not None:
        raise outcome.decode_error
    if outcome.consumer_exit_code != 0:
        raise ConsumerError(outcome.consumer_exit_code)
    return outcome


def stream_playlist(playlist, configuration):
    """Stream every track in playlist, in order, to fm_transmitter.

    Returns a SessionOutcome on success.  Raises ConfigurationError before
    touching any resource, otherwise the first decode-phase error
    (DecoderError / ResourceError) or, failing that, ConsumerError if the
    transmitter exited non-zero.
    """
    playlist = list(playlist)
    if not playlist:
        raise ConfigurationError("Playlist is empty.")
    configuration.validate()
    _check_executables(configuration)

    log.info("Streaming %d track(s) at %.3f MHz (%d Hz, %d ch, %d-bit)",
             len(playlist), configuration.frequency_mhz,
             configuration.sample_rate, configuration.channels,
             configuration.bits_per_sample)

    header = build_wav_header(
        configuration.sample_rate,
        configuration.channels,
        configuration.bits_per_sample,
    )
    decoder = TrackDecoder(
        configuration.ffmpeg_path,
        configuration.sample_rate,
        configuration.channels,
        configuration.chunk_size,
    )
    consumer = ConsumerProcess(
        configuration.transmitter_path,
        configuration.frequency_mhz,
        stdin_fd=pipe_bridge.STDIN_FILENO,
    )
    outcome = SessionOutcome()

    write_fd = _start_consumer(consumer)
    sink = os.fdopen(write_fd, "wb")
    try:
        try:
            try:
                sink.write(header)
                sink.flush()
            except OSError as e:
                raise ResourceError(e.strerror or str(e)) from e

            for index, track in enumerate(playlist, start=1):
                log.info("Track %d/%d: %s", index, len(playlist), track)
                outcome.pcm_bytes += decoder.decode(track, sink)
                outcome.tracks_streamed += 1
        except (DecoderError, ResourceError) as e:
            log.error("Playlist aborted after %d track(s): %s",
                      outcome.tracks_streamed, e)
            outcome.decode_error = e
    finally:
        _close_sink(sink, outcome)
        log.info("Stream closed — waiting for fm_transmitter to finish...")
        outcome.consumer_exit_code = consumer.join()

    result = _reconcile(outcome)
    log.info("Playlist complete — %d track(s), %d PCM bytes",
             outcome.tracks_streamed, outcome.pcm_bytes)
    return result
