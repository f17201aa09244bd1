"""Tests for the bundled core lexicon loader."""

import json

import pytest

from goi.errors import MalformedResourceError
from goi.ingest import load_core_lexicon, parse_core_records, read_core_lexicon
from goi.models import JLPTLevel


@pytest.fixture
def resource(tmp_path):
    """Write records to a temporary resource file and return its path."""

    def _write(records):
        path = tmp_path / "core.json"
        path.write_text(json.dumps(records, ensure_ascii=False), encoding="utf-8")
        return path

    return _write


class TestParseCoreRecords:
    """Test record-to-entry conversion."""

    def test_full_record(self):
        entries = parse_core_records(
            [
                {
                    "word": "学校",
                    "hiragana": "がっこう",
                    "romaji": "gakkou",
                    "meanings": ["school"],
                    "partOfSpeech": ["noun"],
                    "jlptLevel": "N5",
                    "frequency": 90,
                    "kanji": "学校",
                }
            ]
        )
        assert len(entries) == 1
        e = entries[0]
        assert e.headword == "学校"
        assert e.hiragana == "がっこう"
        assert e.katakana is None
        assert e.meanings == ("school",)
        assert e.parts_of_speech == ("noun",)
        assert e.jlpt_level is JLPTLevel.N5
        assert e.frequency == 90
        assert e.kanji_form == "学校"

    def test_missing_word_fails_whole_load(self):
        records = [
            {"word": "夢", "romaji": "yume", "meanings": ["dream"]},
            {"romaji": "nakama", "meanings": ["comrade"]},
        ]
        with pytest.raises(MalformedResourceError, match="word"):
            parse_core_records(records)

    def test_missing_romaji_fails(self):
        with pytest.raises(MalformedResourceError, match="romaji"):
            parse_core_records([{"word": "夢", "meanings": ["dream"]}])

    def test_invalid_jlpt_level(self):
        with pytest.raises(MalformedResourceError):
            parse_core_records([{"word": "夢", "romaji": "yume", "jlptLevel": "N0"}])

    def test_meanings_must_be_list(self):
        with pytest.raises(MalformedResourceError):
            parse_core_records([{"word": "夢", "romaji": "yume", "meanings": "dream"}])

    def test_blank_meanings_dropped(self):
        entries = parse_core_records([{"word": "夢", "romaji": "yume", "meanings": ["dream", "  "]}])
        assert entries[0].meanings == ("dream",)


class TestReadCoreLexicon:
    """Test reading the resource file."""

    def test_bundled_resource_loads(self):
        entries = read_core_lexicon()
        assert len(entries) >= 20
        assert any(e.romaji == "gakkou" and e.display_word == "学校" for e in entries)
        assert all(e.meanings for e in entries)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "core.json"
        path.write_text("[{not json", encoding="utf-8")
        with pytest.raises(MalformedResourceError):
            read_core_lexicon(path)

    def test_root_must_be_array(self, resource):
        with pytest.raises(MalformedResourceError):
            read_core_lexicon(resource({"word": "夢"}))

    def test_missing_file(self, tmp_path):
        with pytest.raises(MalformedResourceError):
            read_core_lexicon(tmp_path / "absent.json")


class TestLoadCoreLexicon:
    """Test degraded mode."""

    def test_malformed_resource_degrades_to_empty(self, resource, caplog):
        path = resource([{"romaji": "yume"}])
        assert load_core_lexicon(path) == []
        assert "Core lexicon unavailable" in caplog.text

    def test_valid_resource(self, resource):
        path = resource([{"word": "夢", "romaji": "yume", "meanings": ["dream"]}])
        entries = load_core_lexicon(path)
        assert [e.headword for e in entries] == ["夢"]
