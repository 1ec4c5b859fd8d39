"""Track decoder — one ffmpeg process per playlist entry.

    ffmpeg -i <track> -f s16le ... pipe:1  (stdout=PCM) → sink (pipe write end)

Output is read in fixed-size chunks and each chunk is written to the sink
before the next read, so a track is never buffered whole.  The next track
is only started after this one's ffmpeg has been drained and reaped.
"""

import logging
import subprocess

import config
from errors import DecoderError, ResourceError
from processes import StderrCapture, terminate_process

log = logging.getLogger("fm-radio")


def build_decoder_cmd(ffmpeg_path, track, sample_rate, channels):
    """Build the ffmpeg command array for raw s16le output on stdout."""
    return [
        ffmpeg_path,
        "-hide_banner",
        "-nostdin",
        "-loglevel", "error",
        "-i", str(track),
        "-f", "s16le",
        "-ac", str(channels),
        "-ar", str(sample_rate),
        "-acodec", "pcm_s16le",
        "pipe:1",
    ]


class TrackDecoder:
    """Decodes tracks with ffmpeg and forwards the PCM to a sink."""

    def __init__(self, ffmpeg_path, sample_rate, channels, chunk_size=None):
        self._ffmpeg_path = ffmpeg_path
        self._sample_rate = sample_rate
        self._channels = channels
        self._chunk_size = chunk_size or config.DECODE_CHUNK_SIZE

    def decode(self, track, sink):
        """Decode one track into sink.  Returns the number of bytes forwarded.

        Raises DecoderError if ffmpeg exits non-zero, ResourceError if ffmpeg
        cannot be started or the sink stops accepting data.  The sink is left
        open in every case.
        """
        cmd = build_decoder_cmd(
            self._ffmpeg_path, track, self._sample_rate, self._channels)
        log.debug("  ffmpeg: %s", " ".join(cmd))

        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise ResourceError(
                f"cannot start {self._ffmpeg_path}: {e.strerror or e}") from e
        log.info("Decoding %s (ffmpeg PID: %d)", track, proc.pid)

        stderr = StderrCapture(proc.stderr, "ffmpeg", keep=True)
        forwarded = 0
        drained = False
        try:
            while True:
                chunk = proc.stdout.read(self._chunk_size)
                if not chunk:
                    break  # EOF — ffmpeg finished writing
                try:
                    sink.write(chunk)
                    sink.flush()
                except OSError as e:
                    log.warning("Stream pipe closed while sending %s "
                                "(fm_transmitter exited?)", track)
                    raise ResourceError(e.strerror or str(e)) from e
                forwarded += len(chunk)
            drained = True
        finally:
            if not drained:
                terminate_process(proc, "ffmpeg")
                stderr.join()
            proc.stdout.close()

        exit_code = proc.wait()
        stderr.join()

        if exit_code != 0:
            raise DecoderError(track, exit_code, stderr.text())

        log.info("Finished %s (%d bytes)", track, forwarded)
        return forwarded
