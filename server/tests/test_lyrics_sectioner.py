"""Tests for lyrics sectioning and karaoke formatting."""

import pytest

from trackstudio.models.lyrics import LyricsSection
from trackstudio.services.lyrics_sectioner import (
    classify_marker,
    extract_sections,
    find_section,
    format_karaoke_lyrics,
    normalize_line,
    parse_sections,
    sort_sections,
)


def _summary(sections: list[LyricsSection]) -> list[tuple[str, int, list[str]]]:
    return [(s.kind, s.sequence_number, s.text) for s in sections]


class TestClassifyMarker:
    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            ("[Intro]", ("intro", None)),
            ("Verse", ("verse", None)),
            ("[Verse 2]", ("verse", 2)),
            ("(verse3)", ("verse", 3)),
            ("Verse 1:", ("verse", 1)),
            ("[Pre-Chorus]", ("pre-chorus", None)),
            ("pre chorus 2", ("pre-chorus", 2)),
            ("[PreChorus]", ("pre-chorus", None)),
            ("[Chorus]", ("chorus", None)),
            ("CHORUS:", ("chorus", None)),
            ("[Final Chorus]", ("final-chorus", None)),
            ("(Bridge)", ("bridge", None)),
            ("[Outro]", ("outro", None)),
        ],
    )
    def test_markers(self, line: str, expected: tuple[str, int | None]):
        assert classify_marker(line) == expected

    @pytest.mark.parametrize(
        "line",
        [
            "Hello world",
            "The chorus of voices",
            "Introduction to love",
            "[Chorus x2]",
            "Verse two",
            "",
            "[]",
        ],
    )
    def test_non_markers(self, line: str):
        assert classify_marker(line) is None

    def test_normalize_strips_brackets_and_colons(self):
        assert normalize_line("  [Verse 1]:  ") == "Verse 1"
        assert normalize_line("(Bridge)") == "Bridge"


class TestParseSections:
    def test_worked_example(self):
        lyrics = "[Verse 1]\nHello\n\n[Chorus]\nWorld\n\n[Chorus]\nAgain\n\n[Outro]\nBye"
        result = parse_sections(lyrics)

        assert _summary(result.sections) == [
            ("verse", 1, ["Hello"]),
            ("chorus", 1, ["World"]),
            ("outro", 1, ["Bye"]),
        ]
        assert result.skipped_lines == ["Again"]

    def test_no_markers_is_single_verse(self):
        lyrics = "First line\n\nSecond line\n   Third line  \n"
        sections = extract_sections(lyrics)

        assert _summary(sections) == [
            ("verse", 1, ["First line", "Second line", "Third line"]),
        ]

    def test_lines_before_first_marker_open_verse_one(self):
        lyrics = "Opening words\n[Chorus]\nHook line"
        assert _summary(extract_sections(lyrics)) == [
            ("verse", 1, ["Opening words"]),
            ("chorus", 1, ["Hook line"]),
        ]

    def test_implicit_verse_then_unnumbered_verse_counts_up(self):
        lyrics = "Opening words\n[Verse]\nSecond verse line"
        assert _summary(extract_sections(lyrics)) == [
            ("verse", 1, ["Opening words"]),
            ("verse", 2, ["Second verse line"]),
        ]

    def test_unnumbered_verses_get_sequence_numbers(self):
        lyrics = "[Verse]\nA\n[Chorus]\nB\n[Verse]\nC\n[Verse]\nD"
        verses = [s for s in extract_sections(lyrics) if s.kind == "verse"]
        assert [(v.sequence_number, v.text) for v in verses] == [(1, ["A"]), (2, ["C"]), (3, ["D"])]

    def test_explicit_verse_numbers_are_kept(self):
        lyrics = "[Verse 2]\nA\n[Verse 5]\nB\n[Verse]\nC"
        verses = extract_sections(lyrics)
        assert [v.sequence_number for v in verses] == [2, 5, 6]

    def test_unnumbered_verse_follows_highest_number(self):
        verses = extract_sections("[Verse 3]\nA\n[Verse]\nB")
        assert [(v.sequence_number, v.text) for v in verses] == [(3, ["A"]), (4, ["B"])]

    def test_repeated_pre_chorus_is_skipped(self):
        lyrics = (
            "[Verse 1]\nv1\n[Pre-Chorus]\nrise\n[Chorus]\nhook\n"
            "[Verse 2]\nv2\n[Pre-Chorus]\nrise again\n[Chorus]\nhook again\n[Bridge]\nb"
        )
        result = parse_sections(lyrics)

        assert [(s.kind, s.sequence_number) for s in result.sections] == [
            ("verse", 1),
            ("pre-chorus", 1),
            ("chorus", 1),
            ("verse", 2),
            ("bridge", 1),
        ]
        assert result.skipped_lines == ["rise again", "hook again"]

    def test_other_kinds_repeat_with_increasing_numbers(self):
        lyrics = "[Bridge]\nfirst\n[Outro]\nend\n[Bridge]\nsecond\n[Final Chorus]\nf1\n[Final Chorus]\nf2"
        sections = extract_sections(lyrics)
        assert [(s.kind, s.sequence_number) for s in sections] == [
            ("bridge", 1),
            ("outro", 1),
            ("bridge", 2),
            ("final-chorus", 1),
            ("final-chorus", 2),
        ]

    def test_blank_lines_do_not_close_sections(self):
        lyrics = "[Chorus]\nline one\n\n\nline two\n[Outro]\nbye"
        sections = extract_sections(lyrics)
        assert sections[0].text == ["line one", "line two"]

    def test_empty_sections_are_dropped(self):
        lyrics = "[Intro]\n\n[Verse 1]\nwords\n[Bridge]\n[Outro]\nend"
        assert _summary(extract_sections(lyrics)) == [
            ("verse", 1, ["words"]),
            ("outro", 1, ["end"]),
        ]

    @pytest.mark.parametrize("lyrics", ["", None, "\n\n  \n", "[Verse 1]\n[Chorus]\n\n[Outro]"])
    def test_no_lyric_lines_returns_empty(self, lyrics: str | None):
        result = parse_sections(lyrics)
        assert result.sections == []
        assert result.skipped_lines == []

    def test_every_lyric_line_is_accounted_for(self):
        lyrics = (
            "intro words\n[Verse 1]\na\nb\n\n[Chorus]\nc\n[Chorus]\nd\ne\n"
            "[Verse 2]\nf\n[Pre-Chorus]\ng\n[Pre-Chorus]\nh\n[Outro]\ni"
        )
        result = parse_sections(lyrics)
        emitted = [line for s in result.sections for line in s.text]

        assert sorted(emitted + result.skipped_lines) == [
            "a", "b", "c", "d", "e", "f", "g", "h", "i", "intro words",
        ]
        assert result.skipped_lines == ["d", "e", "h"]
        assert result.line_count == 7

    def test_concatenated_text_reproduces_lyric_lines(self):
        lyrics = "[Verse 1]\n  one \ntwo\n\n[Bridge]\nthree\n[Outro]\nfour"
        emitted = [line for s in extract_sections(lyrics) for line in s.text]
        assert emitted == ["one", "two", "three", "four"]

    def test_bracketed_adlibs_are_content(self):
        sections = extract_sections("[Chorus]\n(Oh yeah)\nSing it")
        assert sections[0].text == ["(Oh yeah)", "Sing it"]

    def test_windows_line_endings(self):
        sections = extract_sections("[Verse 1]\r\nHello\r\n[Outro]\r\nBye\r\n")
        assert _summary(sections) == [("verse", 1, ["Hello"]), ("outro", 1, ["Bye"])]


class TestSortSections:
    def test_canonical_order(self):
        lyrics = (
            "[Chorus]\nc\n[Verse 2]\nv2\n[Outro]\no\n[Intro]\ni\n"
            "[Verse 1]\nv1\n[Bridge]\nb\n[Pre-Chorus]\np\n[Final Chorus]\nf"
        )
        ordered = sort_sections(extract_sections(lyrics))
        assert [(s.kind, s.sequence_number) for s in ordered] == [
            ("intro", 1),
            ("verse", 1),
            ("verse", 2),
            ("pre-chorus", 1),
            ("chorus", 1),
            ("bridge", 1),
            ("final-chorus", 1),
            ("outro", 1),
        ]

    def test_find_section_by_kind_and_number(self):
        sections = extract_sections("[Verse 1]\na\n[Verse 2]\nb\n[Chorus]\nc")
        assert find_section(sections, "verse", 2).text == ["b"]
        assert find_section(sections, "chorus", 3).text == ["c"]
        assert find_section(sections, "bridge") is None


class TestFormatKaraokeLyrics:
    def test_removes_markers_and_bracketed_lines(self):
        raw = "[Verse 1]\nHello there\n(whispered)\nChorus:\nSing along"
        assert format_karaoke_lyrics(raw) == "Hello there\nSing along"

    def test_strips_one_trailing_punctuation_mark(self):
        assert format_karaoke_lyrics("Hello world!\nAre you there?") == "Hello world\nAre you there"

    def test_splits_long_line_at_central_comma(self):
        raw = "I walked along the river, and the night was calling."
        assert format_karaoke_lyrics(raw) == "I walked along the river\nand the night was calling"

    def test_long_line_without_central_comma_is_kept(self):
        raw = "Oh, I walked along the river and the night was calling me home."
        assert format_karaoke_lyrics(raw) == (
            "Oh, I walked along the river and the night was calling me home"
        )

    def test_paragraphs_separated_by_single_blank_line(self):
        raw = "\n\nFirst line\nSecond line\n\n\n\nThird line\n\n"
        assert format_karaoke_lyrics(raw) == "First line\nSecond line\n\nThird line"

    def test_empty(self):
        assert format_karaoke_lyrics("") == ""
