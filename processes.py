"""Child-process helpers shared by the decoder and transmitter wrappers.

Each child's stderr is drained by a dedicated daemon thread so a chatty
process can never block on a full stderr pipe while we are busy reading its
stdout (or waiting on it).  Lines are logged with a [prefix] tag and can
optionally be kept for error reporting.
"""

import logging
import subprocess
import threading

import config

log = logging.getLogger("fm-radio")


# ---------------------------------------------------------------------------
# Stderr reader thread
# ---------------------------------------------------------------------------

def _stderr_reader(stream, prefix, captured):
    """Read a subprocess stderr stream line by line, log and keep each line.

    Runs in a daemon thread.  Exits when the stream closes (process dies).
    """
    try:
        for raw_line in iter(stream.readline, b""):
            if captured is not None:
                captured.append(raw_line)
            text = raw_line.decode("utf-8", errors="replace").rstrip()
            if text:
                log.info("[%s] %s", prefix, text)
    except (OSError, ValueError) as e:
        log.debug("[%s] stderr reader stopped: %s", prefix, e)
    finally:
        try:
            stream.close()
        except OSError:
            pass


class StderrCapture:
    """Drains one process's stderr on a background thread."""

    def __init__(self, stream, prefix, keep=False):
        self._lines = [] if keep else None
        self._thread = threading.Thread(
            target=_stderr_reader,
            args=(stream, prefix, self._lines),
            daemon=True,
            name=f"stderr-{prefix}",
        )
        self._thread.start()

    def join(self, timeout=5):
        self._thread.join(timeout=timeout)

    def text(self):
        """Everything read so far, decoded and stripped ('' if not kept)."""
        if self._lines is None:
            return ""
        return b"".join(self._lines).decode("utf-8", errors="replace").strip()


# ---------------------------------------------------------------------------
# Shutdown
# ---------------------------------------------------------------------------

def terminate_process(proc, name, timeout=None):
    """Terminate a subprocess gracefully, then force-kill if needed.

    Always reaps the child, so no zombie is left behind.
    """
    if proc is None:
        return
    if proc.poll() is not None:
        # Already exited
        return
    if timeout is None:
        timeout = config.TERMINATE_TIMEOUT
    try:
        log.info("Terminating %s (PID: %d)...", name, proc.pid)
        proc.terminate()
        try:
            proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            log.warning("%s did not exit after SIGTERM, sending SIGKILL", name)
            proc.kill()
            proc.wait()
    except OSError as e:
        log.warning("Error terminating %s: %s", name, e)
