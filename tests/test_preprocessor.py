"""Tests for the lyrics cleaner and chunker."""

import pytest

from conftest import VIVA_RAW
from lyricsnap.models import Rejected
from lyricsnap.preprocessor import (
    LyricsCleaner,
    chunk_lyrics,
    drop_metadata_line,
    strip_annotations,
)
from lyricsnap.profanity import ProfanityFilter


class TestCleanLyrics:
    """Test lyrics cleaning logic."""

    def test_viva_la_vida_example(self, cleaner):
        cleaned = cleaner.clean(VIVA_RAW, "Viva La Vida")
        assert cleaned == "I used to rule the world\nSeas would rise when I gave the word"

    def test_viva_la_vida_without_header(self, cleaner):
        raw = "[Chorus]\nI used to rule the world\n(Oh oh oh)\nSeas would rise when I gave the word"
        cleaned = cleaner.clean(raw, "Viva La Vida")
        assert cleaned == "I used to rule the world\nSeas would rise when I gave the word"

    def test_removes_section_headers(self, cleaner):
        raw = "Song Lyrics\n[Verse 1]\nSome song lyrics\n[Chorus]\nMore lyrics"
        cleaned = cleaner.clean(raw, "Song")
        assert "[Verse 1]" not in cleaned
        assert "[Chorus]" not in cleaned
        assert "Some song lyrics" in cleaned
        assert "More lyrics" in cleaned

    def test_removes_parenthetical_annotations(self, cleaner):
        raw = "Header\nHold on (x2)\nHold on to the night (yeah)"
        cleaned = cleaner.clean(raw, "Hold On")
        assert cleaned == "Hold on\nHold on to the night"

    def test_collapses_blank_lines(self, cleaner):
        raw = "Header\nRain line 1\n\n\n\n\nRain line 2\n   \n"
        assert cleaner.clean(raw, "Rain") == "Rain line 1\nRain line 2"

    def test_drops_first_line_as_metadata(self, cleaner):
        raw = "12 ContributorsRain Song Lyrics\nRain falls down\nOn the city"
        assert cleaner.clean(raw, "Rain Song") == "Rain falls down\nOn the city"

    def test_single_line_keeps_first_line(self, cleaner):
        assert cleaner.clean("Rain falls down", "Rain") == "Rain falls down"

    def test_is_deterministic(self, cleaner):
        raw = VIVA_RAW + "\nDamn the castle walls\nOne minute I held the key"
        first = cleaner.clean(raw, "Viva La Vida")
        second = cleaner.clean(raw, "Viva La Vida")
        assert first == second
        assert first.encode() == second.encode()

    def test_empty_input_is_rejected(self, cleaner):
        assert isinstance(cleaner.clean("", "Anything"), Rejected)
        assert isinstance(cleaner.clean("   \n ", "Anything"), Rejected)

    def test_only_annotations_is_rejected(self, cleaner):
        result = cleaner.clean("Header\n[Intro]\n(Instrumental break)", "Intro")
        assert isinstance(result, Rejected)


class TestRejection:
    """Content-quality rejection heuristics."""

    def test_rejects_over_length_ceiling(self, cleaner):
        raw = "Title words here\n" + ("la " * 2000)
        result = cleaner.clean(raw, "Title")
        assert isinstance(result, Rejected)
        assert "too long" in result.reason

    def test_length_ceiling_ignores_content(self, cleaner):
        raw = "Viva la vida\nI used to rule the world\n" * 200
        assert len(raw) > 4000
        assert isinstance(cleaner.clean(raw, "Viva La Vida"), Rejected)

    def test_exactly_at_ceiling_is_accepted(self):
        cleaner = LyricsCleaner(ProfanityFilter(), max_raw_chars=40)
        raw = "Header\nsunny day out here\nsunny again"
        assert len(raw) <= 40
        assert not isinstance(cleaner.clean(raw, "Sunny"), Rejected)

    @pytest.mark.parametrize("marker", ["instrumental", "INSTRUMENTAL", "Instrumental Version"])
    def test_rejects_instrumental(self, cleaner, marker):
        result = cleaner.clean(f"Sunny\n{marker}\nsunny day", "Sunny")
        assert result == Rejected("instrumental")

    def test_rejects_when_no_title_word_appears(self, cleaner):
        page = "Header\nA totally different song\nWith other words"
        assert cleaner.check_page(page, "Bohemian Rhapsody") == Rejected("title not found in lyrics")

    def test_accepts_when_some_title_word_appears(self, cleaner):
        page = "Header\nThis is the real life\nIs this just fantasy, bohemian"
        assert cleaner.check_page(page, "Bohemian Rhapsody") is None

    def test_title_found_in_page_header(self, cleaner):
        assert cleaner.check_page(VIVA_RAW, "Viva La Vida") is None

    def test_short_title_words_are_ignored(self, cleaner):
        # "Me" and "U" have no word longer than two characters
        assert cleaner.check_page("Header\nnothing in common\nat all", "Me & U") is None

    def test_clean_does_not_match_title(self, cleaner):
        raw = "Header\nA totally different song\nWith other words"
        assert cleaner.clean(raw, "Bohemian Rhapsody") == "A totally different song\nWith other words"

    def test_profane_title(self, cleaner):
        assert cleaner.check_title("Damn Right") == Rejected("profane title")
        assert cleaner.check_title("Yellow") is None


class TestProfanityFiltering:

    def test_drops_profane_lines(self, cleaner):
        raw = "Header\nSunny day\nwhat the shit is this\nsunny night\nsmoking weed all day"
        cleaned = cleaner.clean(raw, "Sunny")
        assert cleaned == "Sunny day\nsunny night"

    def test_no_filtered_line_survives(self):
        words = ["heck", "darn"]
        cleaner = LyricsCleaner(ProfanityFilter(words))
        lines = ["oh heck yes", "sunny skies", "darn it all", "sunny rain"]
        cleaned = cleaner.clean("Header\n" + "\n".join(lines), "Sunny")
        for line in lines:
            if ProfanityFilter(words).is_profane(line):
                assert line not in cleaned.split("\n")

    def test_matches_whole_words_only(self):
        f = ProfanityFilter(["ass"])
        assert f.is_profane("kick ass")
        assert not f.is_profane("a glass of water")
        assert not f.is_profane("passing through")

    def test_case_insensitive(self):
        assert ProfanityFilter(["darn"]).is_profane("DARN it")

    def test_empty_filter_flags_nothing(self):
        assert not ProfanityFilter().is_profane("anything at all")

    def test_from_files(self, tmp_path):
        base = tmp_path / "base.txt"
        base.write_text("# comment\nheck\n\nDARN\n", encoding="utf-8")
        extra = tmp_path / "extra.txt"
        extra.write_text("gosh  # inline comment\n", encoding="utf-8")
        f = ProfanityFilter.from_files(base, extra)
        assert f.words == {"heck", "darn", "gosh"}

    def test_missing_exclusion_file(self, tmp_path):
        base = tmp_path / "base.txt"
        base.write_text("heck\n", encoding="utf-8")
        f = ProfanityFilter.from_files(base, tmp_path / "missing.txt")
        assert len(f) == 1


class TestHelpers:

    def test_strip_annotations(self):
        assert strip_annotations("[Chorus]\nla (x2) la") == "\nla  la"

    def test_drop_metadata_line_skips_leading_blanks(self):
        assert drop_metadata_line(["", "Header", "line"]) == ["", "line"]

    def test_drop_metadata_line_single(self):
        assert drop_metadata_line(["", "only"]) == ["", "only"]


class TestChunkLyrics:

    def test_splits_on_lines(self):
        assert chunk_lyrics("one\ntwo\nthree") == ["one", "two", "three"]

    def test_drops_blank_lines(self):
        assert chunk_lyrics("one\n\n   \ntwo  \n") == ["one", "two"]

    def test_empty(self):
        assert chunk_lyrics("") == []
