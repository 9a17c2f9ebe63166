"""Unified diff parsing for inline comment placement.

GitHub only accepts a review comment on a line that appears in the PR diff,
either added or unchanged context, on the new-file side. DiffIndex records
those lines per file as inclusive ranges so a finding can be checked before
it is sent as an inline comment.
"""

from __future__ import annotations

import bisect
import logging
import re

from prsift_core.models import LineRange

logger = logging.getLogger(__name__)

_NEW_FILE_PREFIX = "+++ b/"
_HUNK_DIGITS_RE = re.compile(r"\d+")


def parse_hunk_start(header: str) -> int:
    """Return the new-file start line from a ``@@ -a,b +c,d @@`` header.

    Reads the run of digits right after the first ``+``. Returns 0 when
    there is no ``+`` or no digits follow it.
    """
    plus = header.find("+")
    if plus == -1:
        return 0
    match = _HUNK_DIGITS_RE.match(header, plus + 1)
    return int(match.group()) if match else 0


def _split_lines(diff_text: str) -> list[str]:
    lines = diff_text.split("\n")
    if lines and lines[-1] == "":
        # Trailing newline terminates the last line, it is not a blank line.
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def _merge_overlapping(ranges: list[LineRange]) -> tuple[LineRange, ...]:
    merged: list[LineRange] = []
    for r in sorted(ranges, key=lambda r: (r.start, r.end)):
        if merged and r.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = LineRange(last.start, max(last.end, r.end))
        else:
            merged.append(r)
    return tuple(merged)


class DiffIndex:
    """Read-only mapping of file path to the new-file lines present in a diff."""

    def __init__(self, ranges: dict[str, list[LineRange]] | None = None):
        self._ranges: dict[str, tuple[LineRange, ...]] = {
            path: _merge_overlapping(list(rs)) for path, rs in (ranges or {}).items() if rs
        }
        self._starts: dict[str, list[int]] = {path: [r.start for r in rs] for path, rs in self._ranges.items()}

    @classmethod
    def build(cls, diff_text: str) -> DiffIndex:
        """Parse a unified diff. Never raises; malformed input yields a partial index."""
        files: dict[str, list[LineRange]] = {}
        current_file: str | None = None
        cursor = 0
        range_start = 0
        in_range = False

        def flush() -> None:
            nonlocal in_range
            if in_range and current_file and range_start > 0:
                files.setdefault(current_file, []).append(LineRange(range_start, cursor - 1))
            in_range = False

        for line in _split_lines(diff_text or ""):
            if line.startswith(_NEW_FILE_PREFIX):
                flush()
                current_file = line[len(_NEW_FILE_PREFIX) :]
                cursor = 0
            elif line.startswith("diff --git "):
                # Git's per-file preamble (diff/index/---) belongs to no hunk.
                flush()
                current_file = None
                cursor = 0
            elif line.startswith("@@"):
                flush()
                cursor = parse_hunk_start(line)
            elif current_file and cursor > 0:
                if line.startswith("-"):
                    flush()
                elif line.startswith("\\"):
                    continue  # "\ No newline at end of file"
                else:
                    # "+", " " and anything unprefixed all exist in the new file.
                    if not in_range:
                        range_start = cursor
                        in_range = True
                    cursor += 1

        flush()
        index = cls(files)
        logger.debug("Indexed %d file(s) from %d diff chars", len(index.files), len(diff_text or ""))
        return index

    @property
    def files(self) -> list[str]:
        return list(self._ranges)

    def ranges(self, path: str) -> tuple[LineRange, ...]:
        return self._ranges.get(path, ())

    def contains(self, path: str, line: int) -> bool:
        """True iff ``line`` is commentable on the new-file side of ``path``."""
        starts = self._starts.get(path)
        if not starts:
            return False
        i = bisect.bisect_right(starts, line) - 1
        return i >= 0 and line in self._ranges[path][i]

    def to_dict(self) -> dict[str, list[list[int]]]:
        return {path: [[r.start, r.end] for r in rs] for path, rs in self._ranges.items()}

    def __repr__(self) -> str:
        return f"DiffIndex({self.to_dict()!r})"
