"""fm_transmitter supervisor — the long-lived consumer of the WAV stream.

The transmitter is spawned with the pipe's read end on stdin and runs until
it sees EOF.  A supervising thread waits on it while the main thread keeps
decoding and writing; the exit code travels back through a one-slot queue,
written once by the supervisor and read once by join().
"""

import logging
import queue
import subprocess
import threading

from errors import ResourceError
from processes import StderrCapture

log = logging.getLogger("fm-radio")


def build_transmitter_cmd(transmitter_path, frequency_mhz):
    """Build the fm_transmitter command array (WAV stream on stdin)."""
    return [
        transmitter_path,
        "-f", "%.3f" % frequency_mhz,
        "-",
    ]


class ConsumerProcess:
    """Runs fm_transmitter on an inherited stdin and reports its exit code."""

    def __init__(self, transmitter_path, frequency_mhz, stdin_fd=0):
        self._cmd = build_transmitter_cmd(transmitter_path, frequency_mhz)
        self._stdin_fd = stdin_fd
        self._proc = None
        self._stderr = None
        self._thread = None
        self._result = queue.Queue(maxsize=1)
        self._exit_code = None

    @property
    def pid(self):
        return self._proc.pid if self._proc else None

    def start(self):
        """Spawn the transmitter and its supervising thread."""
        log.info("  fm_transmitter: %s", " ".join(self._cmd))
        try:
            self._proc = subprocess.Popen(
                self._cmd,
                stdin=self._stdin_fd,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise ResourceError(
                f"cannot start {self._cmd[0]}: {e.strerror or e}") from e
        log.info("fm_transmitter started (PID: %d)", self._proc.pid)

        self._stderr = StderrCapture(self._proc.stderr, "fm_transmitter")
        self._thread = threading.Thread(
            target=self._supervise, daemon=True, name="fm_transmitter")
        self._thread.start()

    def _supervise(self):
        code = self._proc.wait()
        log.info("fm_transmitter exited with code %d", code)
        self._result.put(code)

    def join(self):
        """Block until the transmitter exits and return its exit code."""
        if self._exit_code is None:
            self._exit_code = self._result.get()
            self._thread.join()
            self._stderr.join()
        return self._exit_code
