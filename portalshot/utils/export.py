"""
Export of finished screenshots: image files, clipboard and metadata.

Clipboard copies pipe PNG bytes into wl-copy on Wayland and xclip on X11.
Files are written to a temporary sibling and renamed into place so a failed
save never leaves a partial image behind.
"""

import io
import json
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Optional

from .config import Config
from .errors import ExportFailed
from .screenshot import OutputFormat, Screenshot

logger = logging.getLogger(__name__)


class ClipboardConstants:
    COPY_TIMEOUT_SECONDS = 2
    MIME_TYPE = "image/png"


@dataclass
class ExportResult:
    path: Optional[str]
    size: int
    copied: bool
    screenshot: Screenshot


class Exporter:
    """Stateless save/copy helpers."""

    @staticmethod
    def save(screenshot: Screenshot, path: str, fmt: OutputFormat) -> int:
        """Write the screenshot to path and return the number of bytes written."""
        if fmt is OutputFormat.CLIPBOARD:
            raise ExportFailed("clipboard is not a file format, use copy_to_clipboard")

        image = screenshot.image
        if fmt is OutputFormat.JPEG and image.mode != "RGB":
            image = image.convert("RGB")

        directory = os.path.dirname(os.path.abspath(path))
        temp_path = os.path.join(directory, f".{os.path.basename(path)}.part")
        try:
            os.makedirs(directory, exist_ok=True)
            image.save(temp_path, fmt.value.upper())
            os.replace(temp_path, path)
            file_size = os.path.getsize(path)
        except (OSError, ValueError) as e:
            # ValueError: Pillow refuses the mode/format combination
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise ExportFailed(f"{path}: {e}") from e

        logger.info(f"Screenshot saved: {path} ({file_size} bytes)")
        return file_size

    @staticmethod
    def copy_to_clipboard(screenshot: Screenshot) -> None:
        buffer = io.BytesIO()
        screenshot.image.save(buffer, "PNG")

        command = _clipboard_command()
        if command is None:
            raise ExportFailed("neither wl-copy nor xclip is installed")

        try:
            subprocess.run(
                command,
                input=buffer.getvalue(),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=ClipboardConstants.COPY_TIMEOUT_SECONDS,
                check=True,
            )
        except subprocess.TimeoutExpired:
            # xclip keeps serving the selection in the foreground; the copy
            # has happened by the time it blocks.
            logger.info(f"{command[0]} still running, clipboard copy likely successful")
        except (OSError, subprocess.CalledProcessError) as e:
            raise ExportFailed(f"clipboard copy with {command[0]} failed: {e}") from e

        logger.info("Screenshot copied to clipboard")

    @staticmethod
    def export_metadata(screenshot: Screenshot, path: str) -> None:
        try:
            with open(path, "w") as f:
                json.dump(screenshot.metadata.to_dict(), f, indent=2)
        except OSError as e:
            raise ExportFailed(f"{path}: {e}") from e


def _clipboard_command():
    if os.environ.get("WAYLAND_DISPLAY") and shutil.which("wl-copy"):
        return ["wl-copy", "--type", ClipboardConstants.MIME_TYPE]
    if shutil.which("xclip"):
        return ["xclip", "-selection", "clipboard", "-t", ClipboardConstants.MIME_TYPE, "-i"]
    return None


def clipboard_available() -> bool:
    return _clipboard_command() is not None


class ExportTarget:
    """Where a finished capture goes; called once by the orchestrator."""

    def __init__(
        self,
        config: Config,
        output: Optional[str] = None,
        fmt: Optional[OutputFormat] = None,
        copy_to_clipboard: Optional[bool] = None,
    ):
        self.config = config
        self.format = fmt or config.default_format
        self.output = output
        if copy_to_clipboard is None:
            copy_to_clipboard = config.auto_copy_to_clipboard
        self.copy_to_clipboard = copy_to_clipboard or self.format is OutputFormat.CLIPBOARD

    def resolve_path(self) -> Optional[str]:
        """Destination file, or None when only the clipboard is targeted."""
        if self.format is OutputFormat.CLIPBOARD:
            return None

        filename = self.config.generate_filename() + self.format.extension
        if self.output is None:
            return os.path.join(self.config.save_path, filename)

        output = os.path.expanduser(self.output)
        if os.path.isdir(output) or output.endswith(os.sep):
            return os.path.join(output, filename)
        return output

    def __call__(self, screenshot: Screenshot) -> ExportResult:
        screenshot.metadata.format = self.format

        if self.copy_to_clipboard and not clipboard_available():
            raise ExportFailed("neither wl-copy nor xclip is installed")

        path = self.resolve_path()
        size = 0
        if path is not None:
            size = Exporter.save(screenshot, path, self.format)

        if self.copy_to_clipboard:
            try:
                Exporter.copy_to_clipboard(screenshot)
            except ExportFailed:
                # A failed export leaves nothing behind
                if path is not None:
                    os.remove(path)
                raise

        return ExportResult(path, size, self.copy_to_clipboard, screenshot)
