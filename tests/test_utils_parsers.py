"""Tests for utility parser functions."""

from __future__ import annotations

import pytest

from mfagate.utils.parsers import (
    first_value,
    get_header,
    parse_bool,
    parse_csv,
    parse_groups,
    parse_int,
    parse_int_list,
)
from mfagate.utils.translations import default_messages
from mfagate.utils.translations import ui_language


class TestParseInt:
    def test_returns_none_for_none(self) -> None:
        assert parse_int(None) is None

    def test_returns_none_for_empty_string(self) -> None:
        assert parse_int('') is None

    def test_parses_integer(self) -> None:
        assert parse_int('42') == 42

    def test_raises_for_invalid_string(self) -> None:
        with pytest.raises(ValueError):
            parse_int('not-a-number')


class TestParseBool:
    @pytest.mark.parametrize('value', ['true', 'TRUE', ' True '])
    def test_true_values(self, value: str) -> None:
        assert parse_bool(value) is True

    @pytest.mark.parametrize('value', [None, '', 'false', '1', 'yes'])
    def test_everything_else_is_false(self, value) -> None:
        assert parse_bool(value) is False


class TestParseCsv:
    def test_strips_and_drops_blanks(self) -> None:
        assert parse_csv(' a, b ,,c ') == ['a', 'b', 'c']

    def test_none(self) -> None:
        assert parse_csv(None) == []


class TestParseIntList:
    def test_parses_values(self) -> None:
        assert parse_int_list('1, 2,3', fallback=9) == [1, 2, 3]

    def test_substitutes_fallback_per_bad_entry(self) -> None:
        assert parse_int_list('a,-1,4,', fallback=9) == [9, 9, 4, 9]


class TestFirstValue:
    def test_plain_and_list_values(self) -> None:
        assert first_value('x') == 'x'
        assert first_value(['y', 'z']) == 'y'
        assert first_value([]) is None
        assert first_value(None) is None


class TestGetHeader:
    def test_case_insensitive(self) -> None:
        assert get_header({'Accept-Language': 'de'}, 'accept-language') == 'de'

    def test_missing(self) -> None:
        assert get_header({}, 'origin') is None
        assert get_header(None, 'origin') is None


class TestParseGroups:
    def test_string_and_list(self) -> None:
        assert parse_groups('a,b') == ['a', 'b']
        assert parse_groups(['a', '']) == ['a']
        assert parse_groups(None) == []


class TestTranslations:
    @pytest.mark.parametrize(
        'header, expected',
        [('de', 'de'), ('DE-AT', 'de'), ('de-DE,en;q=0.8', 'de'), ('en-GB', 'en'),
         ('fr', 'en'), (None, 'en'), ('', 'en')],
    )
    def test_ui_language(self, header, expected: str) -> None:
        assert ui_language(header) == expected

    def test_default_messages(self) -> None:
        push_de, otp_de = default_messages('de')
        push_en, otp_en = default_messages('en')
        assert push_de != push_en
        assert otp_en == 'Please enter the OTP!'
        assert default_messages('xx') == (push_en, otp_en)
