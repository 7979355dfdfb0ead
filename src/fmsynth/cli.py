"""Command line entry point for the FM synthesiser."""

from __future__ import annotations

import argparse
import json
import sys
import wave
from pathlib import Path
from typing import Sequence

import numpy as np

from .config import DEFAULT_CONFIG_PATH, SynthConfig, load_configuration
from .diagnostics import enable_synth_logging
from .engine import OfflineAudioContext
from .errors import FmSynthError
from .spectrum import transform
from .topology import FmSynth
from .waveforms import BUILTIN_NAMES


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fmsynth", description="FM oscillator kernel tools")
    parser.add_argument("--config", type=Path, default=None, help="Path to configuration file")
    parser.add_argument("--log-events", action="store_true", help="Append host events to logs/synth_events.log")
    commands = parser.add_subparsers(dest="command", required=True)

    dft = commands.add_parser("dft", help="Print the [real, imag] DFT of a JSON sample list")
    dft.add_argument("input", type=Path, help="JSON file holding a flat list of samples ('-' for stdin)")

    render = commands.add_parser("render", help="Render a note through the offline engine")
    render.add_argument("--note", type=int, default=69, help="MIDI-style note number")
    render.add_argument("--wave", choices=sorted(BUILTIN_NAMES), default="sin", help="Primary wave type")
    render.add_argument("--fm-amount", type=float, default=0.0, help="Modulation depth ratio")
    render.add_argument("--fm-ratio", type=float, default=0.0, help="Modulator frequency ratio")
    render.add_argument("--gain", type=float, default=0.8, help="Oscillator gain (0-1)")
    render.add_argument("--master-gain", type=float, default=0.8, help="Master gain (0-1)")
    render.add_argument("--frames", type=int, default=44100, help="Number of frames to render")
    render.add_argument(
        "--output",
        type=Path,
        help="Optional path for the rendered audio as 16-bit mono WAV",
    )
    return parser


def _load_config(path: Path | None) -> SynthConfig:
    if path is not None:
        return load_configuration(path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_configuration(DEFAULT_CONFIG_PATH)
    return SynthConfig()


def _read_samples(path: Path) -> list[float]:
    if str(path) == "-":
        data = json.load(sys.stdin)
    else:
        with open(path, "r", encoding="utf8") as fh:
            data = json.load(fh)
    if not isinstance(data, list):
        raise ValueError("sample input must be a JSON list")
    return data


def _write_wav(path: Path, samples: np.ndarray, sample_rate: int) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with wave.open(str(path), "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        clipped = np.clip(samples, -1.0, 1.0)
        ints = (clipped * 32767.0).astype("<i2")
        wf.writeframes(ints.tobytes())


def run_dft(args: argparse.Namespace) -> int:
    spectrum = transform(_read_samples(args.input))
    json.dump(spectrum.to_lists(), sys.stdout)
    sys.stdout.write("\n")
    return 0


def run_render(args: argparse.Namespace, config: SynthConfig) -> int:
    if args.frames < 0:
        raise ValueError("--frames must be non-negative")
    context = OfflineAudioContext.from_config(config)
    with FmSynth(lambda: context, config) as synth:
        synth.set_wave_type(args.wave)
        freq = synth.set_note(args.note)
        synth.set_fm_amount(args.fm_amount)
        modulator = synth.set_fm_frequency_ratio(args.fm_ratio)
        synth.set_output_gain(args.gain)
        synth.set_master_gain(args.master_gain)
        audio = context.render(args.frames)
        snapshot = synth.analyser_data()
        peak = float(np.max(np.abs(audio))) if audio.size else 0.0
        print(f"Rendered {audio.shape[0]} frames at {config.sample_rate} Hz")
        print(f"Primary: {freq:.3f} Hz ({args.wave})")
        print(f"Modulator: {modulator.frequency:.3f} Hz, depth {modulator.depth:.3f} Hz")
        print(f"Peak: {peak:.4f}")
        print(f"Analyser: {synth.buffer_length()} bytes, range {min(snapshot)}..{max(snapshot)}")
    if args.output:
        _write_wav(args.output, audio, config.sample_rate)
        print(f"Wrote {args.output}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.log_events:
        enable_synth_logging(True)
    try:
        if args.command == "dft":
            return run_dft(args)
        config = _load_config(args.config)
        # The config flag is process-wide, like --log-events.
        if config.log_events:
            enable_synth_logging(True)
        return run_render(args, config)
    except (FmSynthError, ValueError, TypeError, OSError) as exc:
        print(f"fmsynth: error: {exc}", file=sys.stderr)
        return 1


__all__ = ["build_parser", "main"]
