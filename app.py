"""Subtitle Workbench – command-line entry point."""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from subtitle_workbench.config.defaults import FORMATS
from subtitle_workbench.config.settings import SettingsManager
from subtitle_workbench.utils.logger import setup_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="subtitle-workbench",
        description="Check, fix, convert subtitle files and inspect media waveforms.",
    )
    parser.add_argument("--settings", help="Path to a settings.json to use instead of the default")
    parser.add_argument("--log-level", help="Console log level (default: logging.level setting)")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Report QC issues; exit code 1 when any are found")
    check.add_argument("file")

    fix = sub.add_parser("fix", help="Apply automatic fixes")
    fix.add_argument("file")
    fix.add_argument("-o", "--output", help="Output path (default: overwrite input)")
    fix.add_argument("--only", help="Run a single fixer by name")

    convert = sub.add_parser("convert", help="Convert between subtitle formats")
    convert.add_argument("file")
    convert.add_argument("--to", required=True, choices=sorted(FORMATS), dest="target")
    convert.add_argument("-o", "--output", help="Output path (default: input name with new extension)")

    waveform = sub.add_parser("waveform", help="Print a JSON summary of a media file's audio analysis")
    waveform.add_argument("media")
    waveform.add_argument("--width", type=int, help="Peak envelope width")
    return parser


def _cmd_check(session, args) -> int:
    from subtitle_workbench.core.qc import ISSUE_CODES, summarize

    session.open_file(args.file)
    issues = session.detect_issues()
    for issue in issues:
        code = ISSUE_CODES.get(issue.type, issue.type.value)
        print(f"#{issue.index:<5} {code:<16} {issue.description}")

    counts, flagged = summarize(list(session.qc_results().values()))
    print(f"{len(session.document)} entries, {flagged} with QC issues, {len(issues)} issue(s) total")
    for issue_type, count in sorted(counts.items(), key=lambda kv: kv[0].order):
        print(f"  {ISSUE_CODES[issue_type]:<4} {count}")
    return 1 if issues else 0


def _cmd_fix(session, args) -> int:
    session.open_file(args.file)
    changed = session.apply_fix(args.only) if args.only else session.fix_all()
    if not changed:
        print("Nothing to fix.")
    session.save(args.output or args.file)
    return 0


def _cmd_convert(session, args) -> int:
    session.open_file(args.file)
    session.document.set_format(args.target)
    output = args.output or str(Path(args.file).with_suffix(f".{args.target}"))
    session.save(output)
    print(output)
    return 0


def _cmd_waveform(session, args) -> int:
    from subtitle_workbench.core.audio_analysis import analyze_media

    audio_settings = session.settings.get("audio", {})
    if args.width:
        audio_settings["peak_width"] = args.width
    analysis = analyze_media(args.media, audio_settings)
    summary = {
        "media": analysis.media_path,
        "sample_rate": analysis.sample_rate,
        "duration_ms": analysis.duration_ms,
        "peak_count": int(len(analysis.peaks)),
        "peak_max": round(float(analysis.peaks.max()) if len(analysis.peaks) else 0.0, 4),
        "spectrogram_shape": list(analysis.spectrogram.shape),
    }
    print(json.dumps(summary, indent=2))
    return 0


_COMMANDS = {
    "check": _cmd_check,
    "fix": _cmd_fix,
    "convert": _cmd_convert,
    "waveform": _cmd_waveform,
}


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = SettingsManager(args.settings)
    setup_logger(
        args.log_level or settings.get("logging.level", "INFO"),
        log_dir=settings.get("logging.dir") or None,
        rotation=settings.get("logging.rotation", "10 MB"),
        retention=settings.get("logging.retention", "7 days"),
    )

    from loguru import logger

    from subtitle_workbench.core.session import EditorSession
    from subtitle_workbench.models.datatypes import AudioDecodeError, UnknownFormatError

    logger.debug(f"Running '{args.command}' with settings from {settings.path}")
    session = EditorSession(settings)
    try:
        return _COMMANDS[args.command](session, args)
    except (OSError, UnknownFormatError, AudioDecodeError, KeyError) as e:
        logger.error(str(e))
        return 2
    finally:
        session.close()


if __name__ == "__main__":
    sys.exit(main())
