"""Error taxonomy for FM playlist streaming.

Every failure surfaced by stream_playlist() is a StreamError subclass, so
callers (the CLI) can catch one type and print a single descriptive line.
"""


class StreamError(Exception):
    """Base error for a playlist streaming session."""


class ConfigurationError(StreamError):
    """Empty playlist, bad parameters, or missing executables.

    Raised before any pipe or process is created.
    """


class ResourceError(StreamError):
    """Pipe, file-descriptor, spawn, or sink write failure."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return f"System error: {self.message}"


class DecoderError(StreamError):
    """A decoder process exited with a non-zero status."""

    def __init__(self, track, exit_code, message=""):
        super().__init__(track, exit_code, message)
        self.track = track
        self.exit_code = exit_code
        self.message = message

    def __str__(self):
        text = f"ffmpeg failed on {self.track} with code {self.exit_code}"
        if self.message:
            text += f": {self.message}"
        return text


class ConsumerError(StreamError):
    """The transmitter process exited with a non-zero status."""

    def __init__(self, exit_code):
        super().__init__(exit_code)
        self.exit_code = exit_code

    def __str__(self):
        return f"fm_transmitter exited with code {self.exit_code}"
