#!/usr/bin/env python3
"""
Portalshot CLI interface and command routing.

This module handles command-line argument parsing and routes commands
to appropriate handlers (selection UI, headless screenshot, display listing,
post-processing, configuration).

Main entry point: portalshot/__main__.py or the `portalshot` console script.
"""

import argparse
import dataclasses
import json
import logging
import os
import sys
from typing import Optional, Tuple

from portalshot.utils.config import Config
from portalshot.utils.errors import ConfigError, ScreenshotError

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _parse_size(text: str) -> Tuple[int, int]:
    width, height = map(int, text.split(","))
    return width, height


def run_capture(request, backend, export, delay_seconds: int = 0):
    """Run one orchestrated capture on a Qt event loop and return its result.

    Raises the ScreenshotError the orchestrator failed with.
    """
    from PyQt6.QtCore import QTimer
    from PyQt6.QtWidgets import QApplication
    from portalshot.utils.orchestrator import CaptureOrchestrator

    app = QApplication.instance() or QApplication(sys.argv)
    orchestrator = CaptureOrchestrator(backend, export)
    outcome = {}

    def on_completed(result):
        outcome["result"] = result
        app.quit()

    def on_failed(error):
        outcome["error"] = error
        app.quit()

    orchestrator.completed.connect(on_completed)
    orchestrator.failed.connect(on_failed)

    if delay_seconds > 0:
        logger.info(f"Waiting {delay_seconds}s before capturing")
    QTimer.singleShot(max(delay_seconds, 0) * 1000, lambda: orchestrator.start(request))
    app.exec()

    if "error" in outcome:
        raise outcome["error"]
    return outcome["result"]


def cmd_screenshot(args, config: Config) -> int:
    """Handle headless screenshot command."""
    from PyQt6.QtWidgets import QApplication
    from portalshot.utils.capture import create_backend, query_monitors
    from portalshot.utils.export import ExportTarget
    from portalshot.utils.orchestrator import CaptureRequest
    from portalshot.utils.region import Region
    from portalshot.utils.screenshot import CaptureMode, OutputFormat

    try:
        mode = CaptureMode.parse(args.mode) if args.mode else config.default_mode
        if args.format:
            fmt = OutputFormat.parse(args.format)
        elif args.output and os.path.splitext(args.output)[1]:
            fmt = OutputFormat.from_path(args.output)
        else:
            fmt = None
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    region = None
    if args.area:
        try:
            region = Region.parse(args.area)
        except ValueError:
            print(
                "Error: Area format should be 'x,y,width,height' (e.g., '100,100,800,600')",
                file=sys.stderr,
            )
            return 1
    elif mode is CaptureMode.MONITOR:
        QApplication.instance() or QApplication(sys.argv)
        try:
            monitors = query_monitors()
            region = monitors[args.monitor].geometry
        except IndexError:
            print(f"Error: no display with index {args.monitor}", file=sys.stderr)
            return 1
        except ScreenshotError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    export = ExportTarget(
        config,
        output=args.output,
        fmt=fmt,
        copy_to_clipboard=True if args.clipboard else None,
    )
    delay = args.delay if args.delay is not None else config.delay_seconds

    if not args.quiet and not args.json:
        print("Taking screenshot...")

    backend = None
    try:
        backend = create_backend(config.backend, config.capture_timeout_seconds)
        result = run_capture(CaptureRequest.for_mode(mode, region), backend, export, delay)
    except ScreenshotError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if backend is not None:
            backend.cleanup()

    if args.json:
        payload = {"path": result.path, "size": result.size, "copied": result.copied}
        payload.update(result.screenshot.metadata.to_dict())
        print(json.dumps(payload, indent=2))
    elif not args.quiet:
        if result.path:
            print(f"Screenshot saved: {result.path}")
            print(f"File size: {result.size} bytes ({result.size/1024:.1f} KB)")
        if result.copied:
            print("Screenshot copied to clipboard")

    return 0


def cmd_screenshot_ui(args, config: Config) -> int:
    """Launch interactive selection overlay."""
    from portalshot.ui import main as screenshot_ui_main

    logger.info("Launching interactive selection overlay...")
    return screenshot_ui_main(config)


def cmd_list_displays(args) -> int:
    """List connected displays."""
    from PyQt6.QtWidgets import QApplication
    from portalshot.utils.capture import query_monitors

    QApplication.instance() or QApplication(sys.argv)
    try:
        monitors = query_monitors()
    except ScreenshotError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not monitors:
        print("No displays found.")
        return 0

    for index, monitor in enumerate(monitors):
        marker = " (primary)" if monitor.is_primary else ""
        print(f"[{index}] {monitor}{marker}")
    return 0


def cmd_process(args) -> int:
    """Apply post-processing filters to an existing image."""
    from PIL import Image
    from portalshot.utils.export import Exporter
    from portalshot.utils.processing import ImageProcessor
    from portalshot.utils.screenshot import CaptureMode, OutputFormat, Screenshot

    source, destination = args.process

    try:
        with Image.open(source) as image:
            image.load()
            screenshot = Screenshot.from_image(
                image.convert("RGBA"), CaptureMode.SCREEN, backend="file"
            )
    except OSError as e:
        print(f"Error: cannot read {source}: {e}", file=sys.stderr)
        return 1

    try:
        if args.resize:
            width, height = _parse_size(args.resize)
            screenshot = ImageProcessor.resize(screenshot, width, height)
        if args.blur:
            screenshot = ImageProcessor.blur(screenshot, args.blur)
        if args.border:
            screenshot = ImageProcessor.add_border(screenshot, args.border)
        if args.shadow:
            screenshot = ImageProcessor.add_shadow(screenshot, args.shadow)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        size = Exporter.save(screenshot, destination, OutputFormat.from_path(destination))
    except ScreenshotError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Processed image saved: {destination} ({screenshot.width}x{screenshot.height}, {size} bytes)")
    return 0


def cmd_config_show(args, config: Config) -> int:
    print(config.to_yaml(), end="")
    return 0


def cmd_config_reset(args) -> int:
    try:
        path = Config().save(args.config)
    except OSError as e:
        print(f"Error: cannot write configuration: {e}", file=sys.stderr)
        return 1
    print(f"Configuration reset to defaults: {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="portalshot",
        description="Portalshot - region screenshots through the desktop portal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                        # Draw a region and capture it
  %(prog)s --screenshot --mode screen             # Capture the whole desktop
  %(prog)s --screenshot --mode screen --area 100,100,800,600
  %(prog)s --screenshot --area 0,0,800,600        # Pick with the portal, then crop
  %(prog)s --screenshot --mode monitor --monitor 1
  %(prog)s --screenshot --format jpeg -o /tmp/    # Save to custom directory
  %(prog)s --screenshot --clipboard --quiet       # Copy to clipboard as well
  %(prog)s --list-displays                        # Show connected displays
  %(prog)s --process in.png out.png --border 4 --shadow 12
        """,
    )

    # Commands
    parser.add_argument("--ui", action="store_true",
                        help="Launch interactive selection overlay (default)")
    parser.add_argument("--screenshot", action="store_true",
                        help="Take a screenshot without the overlay")
    parser.add_argument("--list-displays", action="store_true",
                        help="List connected displays")
    parser.add_argument("--process", nargs=2, metavar=("INPUT", "OUTPUT"),
                        help="Post-process an existing image")
    parser.add_argument("--config-show", action="store_true",
                        help="Print the effective configuration")
    parser.add_argument("--config-reset", action="store_true",
                        help="Overwrite the configuration file with defaults")

    # Screenshot options
    parser.add_argument("--mode", help="Capture mode: screen, window, region, monitor")
    parser.add_argument("--area", metavar="x,y,w,h",
                        help="Capture specific area (format: x,y,width,height)")
    parser.add_argument("--monitor", type=int, default=0, metavar="N",
                        help="Display index for --mode monitor (see --list-displays)")
    parser.add_argument("--delay", type=int, metavar="SECONDS",
                        help="Wait before capturing")
    parser.add_argument("--format", help="Output format: png, jpeg, webp, clipboard")
    parser.add_argument("--output", "-o", metavar="PATH",
                        help="Output directory or file path")
    parser.add_argument("--clipboard", action="store_true",
                        help="Also copy the screenshot to the clipboard")
    parser.add_argument("--json", action="store_true",
                        help="Print the result as JSON")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Print nothing on success")

    # Processing options
    parser.add_argument("--border", type=int, metavar="N", help="Add an N pixel border")
    parser.add_argument("--shadow", type=int, metavar="N", help="Add a drop shadow offset by N pixels")
    parser.add_argument("--resize", metavar="W,H", help="Resize to W x H pixels")
    parser.add_argument("--blur", type=float, metavar="SIGMA", help="Gaussian blur radius")

    # General
    parser.add_argument("--backend", choices=("auto", "portal", "x11"),
                        help="Capture backend (default from config)")
    parser.add_argument("--config", metavar="FILE", help="Use an alternative config file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[list] = None) -> int:
    """Main entry point for CLI interface."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    # Reset must work even when the current file is broken
    if args.config_reset:
        return cmd_config_reset(args)

    try:
        config = Config.load(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if args.backend:
        config = dataclasses.replace(config, backend=args.backend)

    # Execute commands
    if args.screenshot:
        return cmd_screenshot(args, config)
    elif args.list_displays:
        return cmd_list_displays(args)
    elif args.process:
        return cmd_process(args)
    elif args.config_show:
        return cmd_config_show(args, config)
    else:
        return cmd_screenshot_ui(args, config)
