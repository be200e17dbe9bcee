"""Checks that human-maintained regions survive a regenerated document.

Regions are delimited by literal marker comments. The check is verbatim: any
change inside a region, whitespace included, counts as not preserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class MarkerPair:
    name: str
    start: str
    end: str


HUMAN_EDITED = MarkerPair("HUMAN-EDITED", "<!-- HUMAN-EDITED START -->", "<!-- HUMAN-EDITED END -->")
PRESERVE = MarkerPair("PRESERVE", "<!-- PRESERVE START -->", "<!-- PRESERVE END -->")
DEFAULT_MARKERS = (HUMAN_EDITED, PRESERVE)


@dataclass(frozen=True)
class PreservedSection:
    marker: MarkerPair
    index: int
    text: str

    @property
    def key(self) -> str:
        return f"{self.marker.name}-{self.index}"


def extract_preserved_sections(
    content: str, markers: Sequence[MarkerPair] = DEFAULT_MARKERS
) -> list[PreservedSection]:
    """Return every complete marker span, numbered from 1 per marker kind."""
    sections: list[PreservedSection] = []
    for marker in markers:
        position = 0
        index = 1
        while True:
            start = content.find(marker.start, position)
            if start == -1:
                break
            end = content.find(marker.end, start + len(marker.start))
            if end == -1:
                break
            stop = end + len(marker.end)
            sections.append(PreservedSection(marker=marker, index=index, text=content[start:stop]))
            position = stop
            index += 1
    return sections


def validate_preserved_sections(
    original: str, updated: str, markers: Sequence[MarkerPair] = DEFAULT_MARKERS
) -> list[str]:
    """Return one warning per span of ``original`` missing verbatim from ``updated``."""
    return [
        f"Human-edited section '{section.key}' was not preserved"
        for section in extract_preserved_sections(original, markers)
        if section.text not in updated
    ]
