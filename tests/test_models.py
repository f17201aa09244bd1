"""Tests for record types and JLPT levels."""

from datetime import datetime, timezone

import pytest

from goi.models import JLPTLevel, LexiconEntry, VocabularyEntry


class TestJLPTLevel:
    """Test JLPT level parsing and ordering."""

    def test_parse_case_insensitive(self):
        assert JLPTLevel.parse("n3") is JLPTLevel.N3
        assert JLPTLevel.parse(" N1 ") is JLPTLevel.N1

    def test_parse_empty_is_none(self):
        assert JLPTLevel.parse(None) is None
        assert JLPTLevel.parse("") is None

    def test_parse_passthrough(self):
        assert JLPTLevel.parse(JLPTLevel.N2) is JLPTLevel.N2

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            JLPTLevel.parse("N6")

    def test_ordering_easiest_first(self):
        assert sorted([JLPTLevel.N1, JLPTLevel.N5, JLPTLevel.N3]) == [
            JLPTLevel.N5,
            JLPTLevel.N3,
            JLPTLevel.N1,
        ]
        assert JLPTLevel.N5.rank == 0
        assert JLPTLevel.N1.rank == 4


class TestLexiconEntry:
    """Test derived fields and equality of dictionary entries."""

    def test_display_word_prefers_kanji_form(self):
        entry = LexiconEntry(headword="がっこう", romaji="gakkou", meanings=("school",), kanji_form="学校")
        assert entry.display_word == "学校"

    def test_display_word_falls_back_to_headword(self):
        entry = LexiconEntry(headword="コーヒー", romaji="koohii", meanings=("coffee",))
        assert entry.display_word == "コーヒー"

    def test_primary_kana(self):
        assert LexiconEntry("学校", "gakkou", ("school",), hiragana="がっこう").primary_kana == "がっこう"
        assert LexiconEntry("コーヒー", "koohii", ("coffee",), katakana="コーヒー").primary_kana == "コーヒー"
        assert LexiconEntry("x", "ekkusu", ("x",)).primary_kana == "ekkusu"

    def test_equality_ignores_id(self):
        a = LexiconEntry("学校", "gakkou", ("school",))
        b = LexiconEntry("学校", "gakkou", ("school",))
        assert a.entry_id != b.entry_id
        assert a == b

    def test_match_key_lowercased(self):
        entry = LexiconEntry("Tokyo", "TOUKYOU", ("Tokyo",))
        assert entry.match_key == ("tokyo", "toukyou")

    def test_searchable_texts_skip_missing(self):
        entry = LexiconEntry("学校", "gakkou", ("school", "academy"), hiragana="がっこう")
        assert entry.searchable_texts() == ["学校", "gakkou", "がっこう", "school", "academy"]


class TestVocabularyEntry:
    """Test serialization of user entries."""

    def test_dict_round_trip(self):
        entry = VocabularyEntry(
            headword="学校",
            romaji="gakkou",
            meanings=["school"],
            parts_of_speech=["noun"],
            hiragana="がっこう",
            jlpt_level=JLPTLevel.N5,
            source="One Piece Ch.1, Page 5",
            date_added=datetime(2024, 5, 1, 12, 30, 15, 123456, tzinfo=timezone.utc),
        )
        assert VocabularyEntry.from_dict(entry.to_dict()) == entry

    def test_to_dict_uses_level_value(self):
        entry = VocabularyEntry("夢", "yume", ["dream"], jlpt_level=JLPTLevel.N3)
        assert entry.to_dict()["jlptLevel"] == "N3"

    def test_from_dict_rejects_invalid_level(self):
        data = VocabularyEntry("夢", "yume", ["dream"]).to_dict()
        data["jlptLevel"] = "N9"
        with pytest.raises(ValueError):
            VocabularyEntry.from_dict(data)

    def test_from_dict_naive_timestamp_is_utc(self):
        data = VocabularyEntry("夢", "yume", ["dream"]).to_dict()
        data["dateAdded"] = "2024-05-01T12:00:00"
        entry = VocabularyEntry.from_dict(data)
        assert entry.date_added == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)

    def test_from_dict_missing_field(self):
        data = VocabularyEntry("夢", "yume", ["dream"]).to_dict()
        del data["romaji"]
        with pytest.raises(KeyError):
            VocabularyEntry.from_dict(data)

    def test_from_lexicon_uses_display_word(self):
        lex = LexiconEntry("がっこう", "gakkou", ("school",), hiragana="がっこう", kanji_form="学校")
        entry = VocabularyEntry.from_lexicon(lex, source="manga")
        assert entry.headword == "学校"
        assert entry.meanings == ["school"]
        assert entry.source == "manga"
