"""Turn multi-page documents into per-page images with an external command."""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

PAGE_PREFIX = "page"
PAGE_MIME_TYPE = "image/png"
_PAGE_NUMBER_RE = re.compile(r"(\d+)$")


class TranscodeError(RuntimeError):
    """Transcoding command failed or produced no pages."""


class FileTranscoder(Protocol):
    def transcode(self, source: Path, output_dir: Path) -> list[Path]:
        """Write page images for ``source`` into ``output_dir``, in page order."""


class CommandTranscoder:
    """Run a command template with ``{source}`` and ``{output_prefix}`` placeholders.

    The default template targets ``pdftoppm``, which writes ``<prefix>-<n>.png``.
    """

    def __init__(self, *, command_template: str, timeout_seconds: int) -> None:
        self.command_template = command_template
        self.timeout_seconds = timeout_seconds

    def transcode(self, source: Path, output_dir: Path) -> list[Path]:
        output_dir.mkdir(parents=True, exist_ok=True)
        output_prefix = output_dir / PAGE_PREFIX
        try:
            rendered = self.command_template.strip().format(
                source=shlex.quote(str(source)),
                output_prefix=shlex.quote(str(output_prefix)),
            )
        except KeyError as error:
            raise TranscodeError(f"Unsupported command template placeholder: {error}") from error
        argv = shlex.split(rendered)
        if not argv:
            raise TranscodeError("Transcode command template rendered empty command.")

        logger.debug("Transcoding %s with %s", source, argv[0])
        try:
            completed = subprocess.run(  # noqa: S603
                argv,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                check=False,
            )
        except FileNotFoundError as error:
            raise TranscodeError(f"Transcode command not found: {argv[0]}") from error
        except subprocess.TimeoutExpired as error:
            raise TranscodeError(
                f"Transcoding {source} timed out after {self.timeout_seconds}s",
            ) from error

        if completed.returncode != 0:
            raise TranscodeError(
                f"Transcode command exited with code {completed.returncode}: "
                f"{completed.stderr.strip()[-500:] or '<no stderr>'}",
            )

        pages = sorted(output_dir.glob(f"{PAGE_PREFIX}*.png"), key=page_number)
        if not pages:
            raise TranscodeError(f"Transcoding {source} produced no pages")
        return pages


def page_number(path: Path) -> int:
    """Trailing page number of a generated file name, ``0`` when there is none."""

    match = _PAGE_NUMBER_RE.search(path.stem)
    return int(match.group(1)) if match else 0
