import json
import math
import re
from datetime import date, datetime, timezone
from decimal import Decimal

# Conversion helpers for spreadsheet cells -> DynamoDB attribute values.
# Every function returns a typed value or the given default, never raises.


def is_blank(value):
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and value.strip() == '':
        return True
    return False


def to_string(value, default=''):
    """Cell value as a string; integral floats lose their '.0' (Excel stores 3 as 3.0)."""
    if is_blank(value):
        return default
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Decimal) and value == value.to_integral_value():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return to_date_string(value)
    return str(value).strip()


def to_number(value, default=0):
    """
    Cell value as a number. Integral values come back as int so they can be
    stored in DynamoDB and compared with the Decimal values it returns.
    """
    if is_blank(value) or isinstance(value, bool):
        return default
    if isinstance(value, (int, Decimal)):
        number = value
    elif isinstance(value, float):
        number = value
    else:
        try:
            number = Decimal(str(value).strip())
        except ArithmeticError:
            return default
    if isinstance(number, float) and (math.isnan(number) or math.isinf(number)):
        return default
    if isinstance(number, Decimal) and not number.is_finite():
        return default
    if number == int(number):
        return int(number)
    return Decimal(str(number))


def to_boolean(value, default=False):
    """true/1/yes (any case) -> True; numbers are truthy when non-zero."""
    if is_blank(value):
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes')
    return default


def to_string_list(value, default=None):
    """
    Normalise a class list. Accepts a list, a JSON array string ('["1A", "2B"]'),
    a comma separated string ('1A, 2B') or a single value.
    """
    if default is None:
        default = []
    if is_blank(value):
        return list(default)
    if isinstance(value, (list, tuple, set)):
        return [to_string(item) for item in value if not is_blank(item)]
    if isinstance(value, str):
        text = value.strip()
        try:
            parsed = json.loads(text)
        except ValueError:
            return [part.strip() for part in text.split(',') if part.strip()]
        if isinstance(parsed, list):
            return [to_string(item) for item in parsed if not is_blank(item)]
        return [to_string(parsed)]
    return [to_string(value)]


def to_date_string(value, default=''):
    """ISO-8601 string for datetime cells; strings are kept as they are."""
    if is_blank(value):
        return default
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')
    if isinstance(value, date):
        return value.isoformat()
    # pandas.Timestamp is a datetime subclass, so anything else is text or a number
    return str(value).strip()


def map_row_to_record(headers, row):
    """Zip a header row with a data row; blank header cells are skipped."""
    record = {}
    for index, header in enumerate(headers):
        if is_blank(header):
            continue
        record[str(header).strip()] = row[index] if index < len(row) else None
    return record


_TRAILING_DIGITS = re.compile(r'/(\d+)/?$')


def scratch_project_id(url):
    """Numeric project id at the end of a Scratch URL, or None."""
    if is_blank(url):
        return None
    match = _TRAILING_DIGITS.search(str(url).strip().split('?')[0].split('#')[0])
    return match.group(1) if match else None
