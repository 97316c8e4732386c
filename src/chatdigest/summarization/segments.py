"""On-disk message segments.

Messages are appended to ``messages_<index>.txt`` files in a single
directory. The highest index present is the active segment; every lower
index still on disk is a closed segment waiting to be summarized. The
directory itself is the only state recovered at startup.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from .tokens import estimate_segment_tokens

_LOG = logging.getLogger(__name__)

SEGMENT_PREFIX = "messages_"
SEGMENT_SUFFIX = ".txt"
_SEGMENT_RE = re.compile(r"^messages_(\d+)\.txt$")


@dataclass
class OpenSegment:
    """An append handle on one segment plus its replayed token count."""

    index: int
    path: Path
    handle: TextIO
    token_count: int

    def append(self, line: str) -> None:
        self.handle.write(line + "\n")
        self.handle.flush()

    def close(self) -> None:
        if not self.handle.closed:
            self.handle.close()


def parse_segment_index(name: str) -> int | None:
    """Return the index encoded in a segment file name, or None."""
    match = _SEGMENT_RE.match(name)
    return int(match.group(1)) if match else None


class SegmentStore:
    """File operations on the segment directory."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def path_for(self, index: int) -> Path:
        return self.directory / f"{SEGMENT_PREFIX}{index}{SEGMENT_SUFFIX}"

    def list_indices(self) -> list[int]:
        """Indices of all segment files present, ascending.

        Raises OSError if the directory cannot be listed.
        """
        indices = []
        for entry in self.directory.iterdir():
            index = parse_segment_index(entry.name)
            if index is not None and entry.is_file():
                indices.append(index)
        return sorted(indices)

    def discover_active_index(self) -> int:
        """Highest segment index on disk, or 0 when there are none."""
        indices = self.list_indices()
        return indices[-1] if indices else 0

    def orphaned_indices(self, active_index: int) -> list[int]:
        """Closed segments still on disk below ``active_index``, ascending.

        These have no summary yet: either their request was lost with a
        previous process or their summarization failed.
        """
        return [i for i in self.list_indices() if i < active_index]

    def open_segment(self, index: int) -> OpenSegment:
        """Open (creating if needed) segment ``index`` for appending.

        The token count is always recomputed from the file's own lines.
        Raises OSError on open or read failure.
        """
        path = self.path_for(index)
        handle = open(path, "a", encoding="utf-8")
        try:
            lines = path.read_text(encoding="utf-8").split("\n")
        except UnicodeDecodeError as e:
            handle.close()
            raise OSError(f"Segment {path} is not valid UTF-8: {e}") from e
        except OSError:
            handle.close()
            raise
        token_count = estimate_segment_tokens(lines)
        _LOG.info("Opened segment %d at %s (%d tokens)", index, path, token_count)
        return OpenSegment(index=index, path=path, handle=handle, token_count=token_count)

    def rotate(self, old_index: int) -> OpenSegment:
        """Open the segment after ``old_index``; the old file is left untouched."""
        return self.open_segment(old_index + 1)

    def read(self, index: int) -> str:
        """Full text of segment ``index``. Raises OSError."""
        path = self.path_for(index)
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise OSError(f"Segment {path} is not valid UTF-8: {e}") from e

    def delete(self, index: int) -> None:
        """Remove segment ``index``. Raises OSError."""
        self.path_for(index).unlink()
