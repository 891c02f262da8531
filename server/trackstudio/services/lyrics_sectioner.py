"""Lyrics sectioning: split free-text lyrics into labeled song sections.

Section markers are lines such as ``[Verse 2]``, ``(Chorus)`` or ``Bridge:``.
Each section's lines are later sent to the orchestrator's prompt generator,
one image prompt per section.
"""

import logging
import re
from collections.abc import Iterable

from trackstudio.models.lyrics import (
    SECTION_RANK,
    UNKNOWN_SECTION_RANK,
    LyricsSection,
    SectionKind,
    SectionParseResult,
)

logger = logging.getLogger(__name__)

_MARKER_STRIP_CHARS = "[]():\t "

# Order matters: "final chorus" must be tried before plain "chorus"
_MARKER_PATTERNS: list[tuple[SectionKind, re.Pattern[str]]] = [
    ("intro", re.compile(r"^intro$", re.IGNORECASE)),
    ("verse", re.compile(r"^verse\s*(\d+)?$", re.IGNORECASE)),
    ("pre-chorus", re.compile(r"^pre[\s-]?chorus\s*(\d+)?$", re.IGNORECASE)),
    ("final-chorus", re.compile(r"^final\s+chorus$", re.IGNORECASE)),
    ("chorus", re.compile(r"^chorus$", re.IGNORECASE)),
    ("bridge", re.compile(r"^bridge$", re.IGNORECASE)),
    ("outro", re.compile(r"^outro$", re.IGNORECASE)),
]

# Only one image is made for these, however often the song repeats them
_SINGLE_INSTANCE_KINDS: frozenset[str] = frozenset({"chorus", "pre-chorus"})

_TRAILING_PUNCTUATION = re.compile(r"[.,!?;:]$")
_KARAOKE_MAX_LINE = 30
_KARAOKE_COMMA_WINDOW = 10


def normalize_line(line: str) -> str:
    """Strip whitespace and any surrounding brackets, parentheses or colons."""
    return line.strip().strip(_MARKER_STRIP_CHARS).strip()


def classify_marker(line: str) -> tuple[SectionKind, int | None] | None:
    """Return ``(kind, explicit_number)`` if the line is a section marker."""
    normalized = normalize_line(line)
    if not normalized:
        return None
    for kind, pattern in _MARKER_PATTERNS:
        match = pattern.match(normalized)
        if match:
            number = match.group(1) if pattern.groups else None
            return kind, int(number) if number else None
    return None


class _SectionBuilder:
    """Accumulates sections while walking the lyrics line by line."""

    def __init__(self) -> None:
        self.result = SectionParseResult()
        self.current: LyricsSection | None = None
        self.skipping = False
        self._seen_single: set[str] = set()
        self._numbers: dict[str, list[int]] = {}

    def _next_number(self, kind: str) -> int:
        used = self._numbers.get(kind)
        return max(used) + 1 if used else 1

    def close(self) -> None:
        if self.current is not None and self.current.text:
            self.result.sections.append(self.current)
        elif self.current is not None:
            logger.debug("Dropping empty section %s", self.current.label)
        self.current = None

    def open(self, kind: SectionKind, number: int | None) -> LyricsSection | None:
        """Start a new section, or return None when its marker is a repeat."""
        self.close()
        if kind in _SINGLE_INSTANCE_KINDS:
            if kind in self._seen_single:
                self.skipping = True
                return None
            self._seen_single.add(kind)
            number = 1
        sequence = number if number else self._next_number(kind)
        self._numbers.setdefault(kind, []).append(sequence)
        self.current = LyricsSection(kind=kind, sequence_number=sequence)
        self.skipping = False
        return self.current

    def add_line(self, line: str) -> None:
        section = self.current
        if section is None and not self.skipping:
            section = self.open("verse", None)
        if section is None:
            self.result.skipped_lines.append(line)
        else:
            section.text.append(line)


def parse_sections(lyrics: str | None) -> SectionParseResult:
    """Parse lyrics into sections in the order they appear.

    Lines before the first marker open an implicit Verse 1. A repeated
    Chorus or Pre-Chorus marker is skipped, and the lines under it are
    reported in ``skipped_lines`` rather than attributed to any section.
    Sections without lyric lines are dropped.
    """
    builder = _SectionBuilder()

    for raw_line in (lyrics or "").splitlines():
        line = raw_line.strip()
        if not normalize_line(line):
            continue

        marker = classify_marker(line)
        if marker is not None:
            builder.open(*marker)
        else:
            builder.add_line(line)

    builder.close()

    result = builder.result
    if result.skipped_lines:
        logger.info(
            "Skipped %d lyric lines under repeated chorus/pre-chorus markers",
            len(result.skipped_lines),
        )
    return result


def extract_sections(lyrics: str | None) -> list[LyricsSection]:
    return parse_sections(lyrics).sections


def section_sort_key(kind: str, sequence_number: int | None) -> tuple[int, int]:
    return SECTION_RANK.get(kind, UNKNOWN_SECTION_RANK), sequence_number or 0


def sort_sections(sections: Iterable[LyricsSection]) -> list[LyricsSection]:
    """Order sections by song structure: intro, verses, pre-chorus, chorus, ..."""
    return sorted(sections, key=lambda s: section_sort_key(s.kind, s.sequence_number))


def find_section(
    sections: Iterable[LyricsSection], kind: str, sequence_number: int | None = None,
) -> LyricsSection | None:
    """Find the section for an image, falling back to the first of its kind."""
    candidates = [s for s in sections if s.kind == kind]
    if not candidates:
        return None
    for section in candidates:
        if sequence_number and section.sequence_number == sequence_number:
            return section
    return candidates[0]


def _strip_trailing_punctuation(text: str) -> str:
    return _TRAILING_PUNCTUATION.sub("", text)


def format_karaoke_lyrics(lyrics: str | None) -> str:
    """Reflow lyrics for on-screen karaoke display.

    Section markers and bracketed cue lines are removed, long lines are split
    at a comma near their middle, trailing punctuation is dropped and
    paragraphs are separated by exactly one blank line.
    """
    formatted: list[str] = []

    for raw_line in (lyrics or "").splitlines():
        line = raw_line.strip()
        if line.startswith(("[", "(")) or classify_marker(line) is not None:
            continue

        if not line:
            formatted.append("")
            continue

        if len(line) > _KARAOKE_MAX_LINE:
            comma = line.find(",")
            middle = len(line) // 2
            if comma > 0 and abs(comma - middle) <= _KARAOKE_COMMA_WINDOW:
                formatted.append(_strip_trailing_punctuation(line[:comma].strip()))
                formatted.append(_strip_trailing_punctuation(line[comma + 1:].strip()))
                continue

        formatted.append(_strip_trailing_punctuation(line))

    paragraphs: list[str] = []
    current: list[str] = []
    for line in formatted:
        if line:
            current.append(line)
        elif current:
            paragraphs.append("\n".join(current))
            current = []
    if current:
        paragraphs.append("\n".join(current))

    return "\n\n".join(paragraphs)
