#!/usr/bin/env python3
"""fm-radio — stream a playlist to fm_transmitter via stdin.

Each file (mp3/wav/flac/...) is decoded with ffmpeg to raw PCM and sent,
behind a single streaming WAV header, as one continuous broadcast.

    fm-radio --freq 100.6 intro.mp3 song.flac outro.wav
"""

import argparse
import logging
import sys

import config
from config import parse_frequency_mhz
from errors import StreamError
from streamer import StreamConfiguration, stream_playlist

log = logging.getLogger("fm-radio")


def _frequency(value):
    try:
        return parse_frequency_mhz(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid frequency: {value!r}")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="fm-radio",
        description="Streams a playlist to fm_transmitter via stdin. Each file "
                    "is decoded with ffmpeg to PCM and sent as a continuous stream.",
    )
    parser.add_argument(
        "-f", "--freq", type=_frequency, default=config.FM_FREQUENCY,
        required=config.FM_FREQUENCY is None,
        help="carrier frequency in MHz (default: $FM_FREQUENCY)")
    parser.add_argument(
        "--ffmpeg", default=config.FFMPEG_PATH,
        help="ffmpeg executable (default: %(default)s)")
    parser.add_argument(
        "--transmitter", default=config.FM_TRANSMITTER_PATH,
        help="fm_transmitter executable (default: %(default)s)")
    parser.add_argument(
        "--sample-rate", type=int, default=config.SAMPLE_RATE,
        help="output sample rate in Hz (default: %(default)s)")
    parser.add_argument(
        "--channels", type=int, default=config.CHANNELS,
        help="output channel count (default: %(default)s)")
    parser.add_argument("files", nargs="+", help="audio files, played in order")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    configuration = StreamConfiguration(
        frequency_mhz=args.freq,
        sample_rate=args.sample_rate,
        channels=args.channels,
        ffmpeg_path=args.ffmpeg,
        transmitter_path=args.transmitter,
    )

    log.info("════════════════════════════════════════════")
    log.info("  fm-radio starting")
    log.info("════════════════════════════════════════════")
    log.info("  Frequency:   %.3f MHz", configuration.frequency_mhz)
    log.info("  Tracks:      %d", len(args.files))
    log.info("  ffmpeg:      %s", configuration.ffmpeg_path)
    log.info("  Transmitter: %s", configuration.transmitter_path)

    try:
        stream_playlist(args.files, configuration)
    except StreamError as e:
        log.error("Error: %s", e)
        return 1
    except KeyboardInterrupt:
        log.info("Interrupted")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
