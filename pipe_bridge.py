"""Pipe bridge — OS pipe plus temporary stdin redirection.

fm_transmitter reads its WAV stream from stdin ("-").  To hand it the read
end of our pipe we dup2() that end onto fd 0 just long enough for the child
to inherit it, then put the original stdin back:

    read_fd, write_fd = acquire()
    with bind_as_input(read_fd):
        os.close(read_fd)          # fd 0 now holds the only copy
        consumer.start()           # child inherits fd 0
    # original stdin restored here, even if start() raised

The write end is non-inheritable (os.pipe() default), so neither the
transmitter nor the ffmpeg children keep the pipe open behind our back.
"""

import errno
import fcntl
import logging
import os
from contextlib import contextmanager

from errors import ResourceError

log = logging.getLogger("fm-radio")

STDIN_FILENO = 0


def _above_stdio(fd):
    """Move fd to 3 or higher (close-on-exec) so it cannot shadow stdio."""
    if fd > 2:
        return fd
    try:
        return fcntl.fcntl(fd, fcntl.F_DUPFD_CLOEXEC, 3)
    finally:
        os.close(fd)


def acquire():
    """Create a pipe and return (read_fd, write_fd), both above fd 2.

    With fd 0 closed at startup os.pipe() would hand out fd 0 itself,
    which bind_as_input() would then mistake for the original stdin.
    """
    try:
        read_fd, write_fd = os.pipe()
    except OSError as e:
        raise ResourceError(e.strerror or str(e)) from e
    try:
        read_fd = _above_stdio(read_fd)
    except OSError as e:
        os.close(write_fd)
        raise ResourceError(e.strerror or str(e)) from e
    try:
        write_fd = _above_stdio(write_fd)
    except OSError as e:
        os.close(read_fd)
        raise ResourceError(e.strerror or str(e)) from e
    log.debug("Pipe created (read fd %d, write fd %d)", read_fd, write_fd)
    return read_fd, write_fd


def _save_stdin():
    """Duplicate fd 0 so it can be restored later.  None if fd 0 is closed."""
    try:
        return os.dup(STDIN_FILENO)
    except OSError as e:
        if e.errno == errno.EBADF:
            return None
        raise ResourceError(e.strerror or str(e)) from e


def _restore_stdin(saved_fd):
    try:
        if saved_fd is None:
            os.close(STDIN_FILENO)
        else:
            os.dup2(saved_fd, STDIN_FILENO)
    except OSError as e:
        raise ResourceError(e.strerror or str(e)) from e
    finally:
        if saved_fd is not None:
            os.close(saved_fd)


@contextmanager
def bind_as_input(read_fd):
    """Substitute fd 0 with read_fd for the duration of the with-block.

    The original stdin is restored on every exit path.  The caller still
    owns read_fd and should close it once inside the block.
    """
    saved_fd = _save_stdin()
    try:
        os.dup2(read_fd, STDIN_FILENO)
    except OSError as e:
        if saved_fd is not None:
            os.close(saved_fd)
        raise ResourceError(e.strerror or str(e)) from e
    log.debug("stdin redirected to pipe read end")

    try:
        yield STDIN_FILENO
    finally:
        _restore_stdin(saved_fd)
        log.debug("stdin restored")
