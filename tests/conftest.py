"""Shared fixtures: fake ffmpeg / fm_transmitter executables and PCM tracks.

The fakes are tiny Python scripts, so tests exercise the real process,
pipe and stdin plumbing without needing either tool installed.

fake ffmpeg:        copies the -i file to stdout.  A file starting with
                    b"FAIL" makes it print the rest to stderr and exit 1.
                    Appends "<pid> <track>" to $FAKE_FFMPEG_LOG per spawn.
fake fm_transmitter: reads stdin to EOF into $FAKE_TX_OUT, writes its
                    argv to $FAKE_TX_OUT.args, exits with $FAKE_TX_EXIT.
                    With FAKE_TX_MODE=close it closes stdin and exits at once;
                    with FAKE_TX_MODE=header it keeps the 44-byte header,
                    then closes stdin and exits.
"""

import os
import stat
import subprocess
import sys
import textwrap
from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

from streamer import StreamConfiguration

PROJECT_ROOT = Path(__file__).resolve().parent.parent

FAKE_FFMPEG = """\
#!{python}
import os
import sys

args = sys.argv[1:]
track = args[args.index("-i") + 1]
log_path = os.environ.get("FAKE_FFMPEG_LOG")
if log_path:
    with open(log_path, "a") as f:
        f.write("%d %s\\n" % (os.getpid(), track))

with open(track, "rb") as f:
    data = f.read()

if data.startswith(b"FAIL"):
    sys.stderr.write("\\n  " + data[4:].decode() + "  \\n")
    sys.exit(1)

out = sys.stdout.buffer
for i in range(0, len(data), 4096):
    out.write(data[i:i + 4096])
out.flush()
"""

FAKE_TRANSMITTER = """\
#!{python}
import os
import sys

out_path = os.environ["FAKE_TX_OUT"]
with open(out_path + ".args", "w") as f:
    f.write(" ".join(sys.argv[1:]))

mode = os.environ.get("FAKE_TX_MODE")
if mode == "close":
    os.close(0)
    sys.exit(0)

if mode == "header":
    header = b""
    while len(header) < 44:
        chunk = os.read(0, 44 - len(header))
        if not chunk:
            break
        header += chunk
    with open(out_path, "wb") as f:
        f.write(header)
    os.close(0)
    sys.exit(0)

data = sys.stdin.buffer.read()
with open(out_path, "wb") as f:
    f.write(data)
sys.exit(int(os.environ.get("FAKE_TX_EXIT", "0")))
"""


def _write_script(path, source):
    path.write_text(source.format(python=sys.executable))
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


def make_tone(freq_hz, seconds=0.05, sample_rate=44_100):
    """Signed 16-bit mono sine tone as raw bytes."""
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    samples = (np.sin(2 * np.pi * freq_hz * t) * 16_000).astype("<i2")
    return samples.tobytes()


@pytest.fixture
def fakes(tmp_path, monkeypatch):
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    out_path = tmp_path / "transmitted.wav"
    spawn_log = tmp_path / "ffmpeg_spawns.log"

    monkeypatch.setenv("FAKE_TX_OUT", str(out_path))
    monkeypatch.setenv("FAKE_FFMPEG_LOG", str(spawn_log))
    monkeypatch.delenv("FAKE_TX_MODE", raising=False)
    monkeypatch.delenv("FAKE_TX_EXIT", raising=False)

    ns = SimpleNamespace(
        ffmpeg=_write_script(bin_dir / "ffmpeg", FAKE_FFMPEG),
        transmitter=_write_script(bin_dir / "fm_transmitter", FAKE_TRANSMITTER),
        out_path=out_path,
        spawn_log=spawn_log,
        tracks_dir=tmp_path,
    )

    def make_track(name, data):
        path = tmp_path / name
        path.write_bytes(data)
        return str(path)

    def spawns():
        """[(pid, track), ...] for every fake ffmpeg started so far."""
        if not spawn_log.exists():
            return []
        entries = []
        for line in spawn_log.read_text().splitlines():
            pid, track = line.split(" ", 1)
            entries.append((int(pid), track))
        return entries

    def transmitted():
        return out_path.read_bytes()

    def transmitter_args():
        return (tmp_path / "transmitted.wav.args").read_text()

    def configuration(**overrides):
        values = dict(
            frequency_mhz=100.6,
            sample_rate=44_100,
            channels=1,
            bits_per_sample=16,
            ffmpeg_path=ns.ffmpeg,
            transmitter_path=ns.transmitter,
            chunk_size=8192,
        )
        values.update(overrides)
        return StreamConfiguration(**values)

    ns.make_track = make_track
    ns.spawns = spawns
    ns.transmitted = transmitted
    ns.transmitter_args = transmitter_args
    ns.configuration = configuration
    return ns


def assert_reaped(pid):
    """The process is gone and has been waited for (no zombie, no orphan)."""
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)


def stdin_identity():
    """(st_dev, st_ino) of whatever fd 0 is, or None if fd 0 is closed."""
    try:
        st = os.fstat(0)
    except OSError:
        return None
    return st.st_dev, st.st_ino


def run_without_stdin(source, *args):
    """Run a Python snippet in a child whose fd 0 is closed at startup.

    Returns the child's stdout lines.  The project modules are importable.
    """
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(
        filter(None, [str(PROJECT_ROOT), env.get("PYTHONPATH")]))
    result = subprocess.run(
        [sys.executable, "-c", textwrap.dedent(source), *args],
        preexec_fn=lambda: os.close(0),
        env=env,
        capture_output=True,
        text=True,
        timeout=60,
    )
    assert result.returncode == 0, result.stderr
    return result.stdout.splitlines()
