"""
hdrify Command Line Interface

Usage:
    hdrify <command> [options]

Commands:
    convert     Convert an SDR clip to HDR
    graph       Print the compiled filter graph for a parameter set
    status      Show media engine status
    serve       Run the web interface

Examples:
    hdrify convert input.mp4 -o input_hdr.mp4 -i 1.4 -t mobius
    hdrify convert input.mp4 -n
    hdrify graph -i 1.25 -t reinhard
    hdrify serve --port 8080
"""

import sys
import asyncio
import argparse
import logging
from pathlib import Path

from hdrify import __version__


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog='hdrify',
        description='SDR to HDR video converter',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        '-V', '--version',
        action='version',
        version=f'hdrify {__version__}',
    )
    parser.add_argument(
        '-c', '--config',
        default=None,
        help='Configuration file (JSON)',
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging',
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Convert command
    conv_parser = subparsers.add_parser(
        'convert',
        help='Convert an SDR clip to HDR',
    )
    conv_parser.add_argument('input', help='Input video file')
    conv_parser.add_argument(
        '-o', '--output',
        default=None,
        help='Output file (default: <input>_hdr.mp4)',
    )
    _add_tone_arguments(conv_parser)
    conv_parser.add_argument(
        '-n', '--dry-run',
        action='store_true',
        help='Print the ffmpeg command without executing',
    )
    conv_parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Do not echo engine log lines',
    )

    # Graph command
    graph_parser = subparsers.add_parser(
        'graph',
        help='Print the compiled filter graph',
    )
    _add_tone_arguments(graph_parser)

    # Status command
    subparsers.add_parser(
        'status',
        help='Show media engine status',
    )

    # Serve command
    serve_parser = subparsers.add_parser(
        'serve',
        help='Run the web interface',
    )
    serve_parser.add_argument('--host', default=None, help='Host to bind to')
    serve_parser.add_argument('-p', '--port', type=int, default=None, help='Port to listen on')

    # Parse arguments
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    if args.command is None:
        parser.print_help()
        return 0

    from hdrify.core.config import resolve_settings
    settings = resolve_settings(args.config)

    # Dispatch to appropriate command
    if args.command == 'convert':
        return run_convert(args, settings)
    elif args.command == 'graph':
        return run_graph(args, settings)
    elif args.command == 'status':
        return run_status(args, settings)
    elif args.command == 'serve':
        return run_serve(args, settings)
    else:
        parser.print_help()
        return 1


def _add_tone_arguments(parser):
    from hdrify.graph import ToneCurve
    parser.add_argument(
        '-i', '--intensity',
        type=float,
        default=None,
        help='HDR intensity, 1.00-1.70 (default: 1.25)',
    )
    parser.add_argument(
        '-t', '--tone-curve',
        default=None,
        choices=[c.value for c in ToneCurve],
        help='Tone mapping curve (default: hable)',
    )


def _tone_parameters(args, settings):
    from hdrify.graph import ToneParameters
    intensity = args.intensity if args.intensity is not None else settings.default_intensity
    curve = args.tone_curve or settings.default_curve
    return ToneParameters(intensity=intensity, curve=curve)


def run_graph(args, settings):
    """Print the compiled filter graph, one stage per line."""
    from hdrify.core.errors import InvalidParameterError
    from hdrify.graph import compile_command

    try:
        command = compile_command(
            _tone_parameters(args, settings),
            input_name=settings.input_name,
            output_name=settings.output_name,
        )
    except InvalidParameterError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    for stage in command.filter_graph:
        print(f"{stage.name:14s} {stage.render()}")
    print()
    print(command.describe())
    return 0


def run_status(args, settings):
    """Load the engine and print its status."""
    from hdrify.core.engine import FFmpegEngine
    from hdrify.core.errors import EngineInitError
    from hdrify.core.handle import EngineHandle

    async def probe():
        async with EngineHandle(FFmpegEngine.from_settings(settings)) as handle:
            error = None
            try:
                await handle.ensure_loaded()
            except EngineInitError as e:
                error = str(e)
            return handle.status(), error

    status, error = asyncio.run(probe())
    print("hdrify Engine Status")
    print("=" * 40)
    print(f"  Platform:        {status['platform']}")
    print(f"  Binary:          {status['binary'] or 'not found'}")
    print(f"  Version:         {status['version'] or 'unknown'}")
    print(f"  State:           {status['state']}")
    if status['missing_filters']:
        print(f"  Missing filters: {', '.join(status['missing_filters'])}")
    if status['missing_encoders']:
        print(f"  Missing encoders: {', '.join(status['missing_encoders'])}")
    if error:
        print(f"  Error:           {error}")
        return 1
    return 0


def run_convert(args, settings):
    """Run one conversion from the command line."""
    from hdrify.core.engine import FFmpegEngine
    from hdrify.core.errors import InvalidParameterError
    from hdrify.core.handle import EngineHandle
    from hdrify.graph import compile_command
    from hdrify.jobs import ConversionOrchestrator, JobState, SourceFile
    from hdrify.utils.probe import get_video_properties

    input_path = Path(args.input)
    output_path = Path(args.output) if args.output else input_path.with_name(
        f"{input_path.stem}_hdr.mp4"
    )
    params = _tone_parameters(args, settings)

    try:
        command = compile_command(params, settings.input_name, settings.output_name)
    except InvalidParameterError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.dry_run:
        print(command.describe())
        return 0

    try:
        source = SourceFile.from_path(input_path)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        print(f"Source: {input_path.name} ({get_video_properties(input_path)})")
    except RuntimeError:
        print(f"Source: {input_path.name} (properties unavailable)")

    async def convert():
        handle = EngineHandle(FFmpegEngine.from_settings(settings), settings.log_capacity)
        async with handle, ConversionOrchestrator(handle, settings) as jobs:
            if not args.quiet:
                handle.subscribe(lambda line: print(f"  {line}"))
            state = await jobs.start_session()
            if state is JobState.FAILED:
                return jobs.error_message, None
            jobs.select_source(source.data, source.name)
            print(jobs.label)
            state = await jobs.start_conversion(params)
            if state is not JobState.COMPLETED:
                return jobs.error_message, None
            return None, jobs.result.save(output_path)

    error, saved = asyncio.run(convert())
    if error:
        print(f"Error: {error}", file=sys.stderr)
        return 1

    print(f"Saved: {saved}")
    return 0


def run_serve(args, settings):
    """Run the web interface."""
    from hdrify.web.server import serve
    serve(settings, args.host, args.port)
    return 0


if __name__ == '__main__':
    sys.exit(main())
