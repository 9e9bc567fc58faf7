"""Durable archival of raw telemetry batches."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from .. import codec
from .envelope import Envelope

LOGGER = logging.getLogger(__name__)


def archive_name(batch_id: int) -> str:
    return f"{batch_id:08x}"


class BatchArchive:
    """Writes each received batch to ``<directory>/<id as 8 hex digits>``.

    Files are written to a temporary name and renamed into place, so
    concurrent writers of the same id never leave an interleaved file behind.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def path_for(self, batch_id: int) -> Path:
        return self.directory / archive_name(batch_id)

    async def persist(self, batch_id: int, raw: bytes) -> Optional[Path]:
        """Archive ``raw`` for ``batch_id``; returns the path, or None when the write failed."""

        try:
            path = await asyncio.to_thread(self._write, batch_id, raw)
        except OSError as exc:
            LOGGER.error("Failed to archive batch %d: %s", batch_id, exc)
            return None

        LOGGER.debug("Archived batch %d (%d bytes) to %s", batch_id, len(raw), path)
        return path

    def _write(self, batch_id: int, raw: bytes) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self.path_for(batch_id)
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=".tmp", dir=self.directory
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(raw)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, target)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(temp_name)
            raise
        return target


def read_archived_envelope(path: Path) -> Envelope:
    """Load an archived batch file back into its envelope record.

    Raises:
        OSError: The file cannot be read.
        codec.CodecError: The file does not hold exactly one CBOR item.
        EnvelopeError: The item is not an envelope map.
    """

    return Envelope.from_wire(codec.decode(Path(path).read_bytes()))
