from typing import Literal

from pydantic import BaseModel, Field


SectionKind = Literal[
    "intro", "verse", "pre-chorus", "chorus", "bridge", "final-chorus", "outro"
]

# Canonical song-structure order used when listing sections or images
SECTION_RANK: dict[str, int] = {
    "intro": 1,
    "verse": 2,
    "pre-chorus": 3,
    "chorus": 4,
    "bridge": 5,
    "final-chorus": 6,
    "outro": 7,
}
UNKNOWN_SECTION_RANK = 999


class LyricsSection(BaseModel):
    kind: SectionKind
    sequence_number: int = Field(ge=1, default=1)
    text: list[str] = Field(default_factory=list)

    @property
    def label(self) -> str:
        return f"{self.kind} {self.sequence_number}"

    @property
    def lyrics(self) -> str:
        return "\n".join(self.text)


class SectionParseResult(BaseModel):
    sections: list[LyricsSection] = Field(default_factory=list)
    skipped_lines: list[str] = Field(default_factory=list)

    @property
    def line_count(self) -> int:
        return sum(len(s.text) for s in self.sections)


class LyricsParseRequest(BaseModel):
    lyrics: str
    canonical_order: bool = False


class KaraokeFormatRequest(BaseModel):
    lyrics: str
