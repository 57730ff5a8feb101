from datetime import datetime
from decimal import Decimal

import pytest

from fieldConversion import (
    map_row_to_record,
    scratch_project_id,
    to_boolean,
    to_date_string,
    to_number,
    to_string,
    to_string_list,
)


@pytest.mark.parametrize('value,expected', [
    (None, ''),
    (float('nan'), ''),
    ('  STU001 ', 'STU001'),
    (3.0, '3'),
    (3.5, '3.5'),
    (12, '12'),
    (Decimal('7'), '7'),
])
def test_to_string(value, expected):
    assert to_string(value) == expected


@pytest.mark.parametrize('value,expected', [
    ('123', 123),
    (85.0, 85),
    ('', 0),
    (None, 0),
    ('invalid', 0),
    (True, 0),
])
def test_to_number(value, expected):
    result = to_number(value)
    assert result == expected
    assert isinstance(result, int)


def test_to_number_keeps_fractions_as_decimal():
    assert to_number('123.45') == Decimal('123.45')
    assert to_number(None, 100) == 100


@pytest.mark.parametrize('value,expected', [
    (True, True), ('true', True), ('TRUE', True), (1, True), ('1', True), ('Yes', True),
    (False, False), ('false', False), (0, False), ('0', False), (None, False), ('', False),
])
def test_to_boolean(value, expected):
    assert to_boolean(value) is expected


@pytest.mark.parametrize('value,expected', [
    ('["1A", "2B"]', ['1A', '2B']),
    (['1A', '2B'], ['1A', '2B']),
    ('1A', ['1A']),
    ('1A, 2B', ['1A', '2B']),
    ('[1, 2]', ['1', '2']),
    (None, []),
    ('', []),
])
def test_to_string_list(value, expected):
    assert to_string_list(value) == expected


def test_to_string_list_default_for_blank():
    assert to_string_list(None, ['1A']) == ['1A']


def test_to_date_string():
    assert to_date_string(datetime(2025, 1, 15, 10, 30)) == '2025-01-15T10:30:00Z'
    assert to_date_string('2024-01-15T10:30:00Z') == '2024-01-15T10:30:00Z'
    assert to_date_string(None) == ''


def test_map_row_to_record_skips_blank_headers_and_pads():
    record = map_row_to_record(['student_id', None, 'name_1', 'marks'], ['STU001', 'ignored', 'John'])
    assert record == {'student_id': 'STU001', 'name_1': 'John', 'marks': None}


@pytest.mark.parametrize('url,expected', [
    ('https://scratch.mit.edu/projects/1168960672', '1168960672'),
    ('https://scratch.mit.edu/projects/1168960672/', '1168960672'),
    ('https://scratch.mit.edu/projects/1168960672/?x=1', '1168960672'),
    ('https://scratch.mit.edu/projects/editor', None),
    ('', None),
])
def test_scratch_project_id(url, expected):
    assert scratch_project_id(url) == expected
