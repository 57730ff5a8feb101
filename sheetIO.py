import base64
import binascii
import logging
import warnings
from io import BytesIO

import pandas as pd
from openpyxl.utils import get_column_letter

from fieldConversion import is_blank

logger = logging.getLogger(__name__)

MAX_RECORDS = 4000

ZIP_MAGIC = b'PK\x03\x04'
EXCEL_EXTENSIONS = ('xlsx', 'xlsm', 'xls')


class UploadError(Exception):
    """Request problem that ends an upload before anything is written."""

    def __init__(self, message, status_code=400, extra=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.extra = extra or {}


def _is_excel(content, file_name):
    if content.startswith(ZIP_MAGIC):
        return True
    file_name = file_name or ''
    return '.' in file_name and file_name.rsplit('.', 1)[-1].lower() in EXCEL_EXTENSIONS


def _keep_row(cells):
    return cells


def read_sheet(content, file_name=None):
    """First worksheet (or the CSV) as a list of rows, NaN cells as None."""
    if _is_excel(content, file_name):
        df = pd.read_excel(BytesIO(content), engine='openpyxl', header=None, dtype=object)
    else:
        # The first line fixes the width. Cells past it have no header and are dropped.
        with warnings.catch_warnings():
            warnings.simplefilter('ignore', pd.errors.ParserWarning)
            df = pd.read_csv(BytesIO(content), header=None, dtype=str, keep_default_na=False,
                             skip_blank_lines=False, engine='python', on_bad_lines=_keep_row)
    df = df.astype(object).where(pd.notna(df), None)
    return df.values.tolist()


def is_blank_row(row):
    return not row or all(is_blank(cell) for cell in row)


def decode_upload(body):
    """
    Turn the request body ({"file": <base64>, "fileName": ...}) into
    (headers, data_rows). Blank rows are dropped.
    """
    encoded = body.get('file')
    if not encoded:
        raise UploadError('No file uploaded')
    try:
        content = base64.b64decode(encoded)
    except (binascii.Error, ValueError, TypeError) as e:
        raise UploadError(f'Failed to parse file: {e}')

    try:
        rows = read_sheet(content, body.get('fileName') or body.get('file_name'))
    except pd.errors.EmptyDataError:
        rows = []
    except Exception as e:
        logger.warning('Spreadsheet parsing failed: %s', e)
        raise UploadError(f'Failed to parse file: {e}')

    if len(rows) < 2:
        raise UploadError('File is empty or contains no data rows')

    headers = [None if is_blank(h) else str(h).strip() for h in rows[0]]
    data_rows = [row for row in rows[1:] if not is_blank_row(row)]
    if not data_rows:
        raise UploadError('File is empty or contains no data rows')
    return headers, data_rows


def validate_headers(headers, required_headers, expected_headers):
    present = [h for h in headers if h]
    missing = [h for h in required_headers if h not in present]
    if missing:
        raise UploadError(
            f'Missing required column(s): {", ".join(missing)}. Please check your Excel file headers.',
            extra={'expectedHeaders': list(expected_headers)},
        )
    unexpected = [h for h in present if h not in expected_headers]
    if unexpected:
        logger.warning('Unexpected headers found: %s', unexpected)
    return unexpected


def validate_record_count(count, max_records=MAX_RECORDS):
    if count > max_records:
        raise UploadError(f'File contains {count} records. Maximum allowed is {max_records:,} records.')


def build_workbook(rows, columns, sheet_name, column_widths=None):
    """rows: list of dicts; columns fixes the column order. Returns xlsx bytes."""
    df = pd.DataFrame(rows, columns=columns)
    output = BytesIO()
    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
        if column_widths:
            worksheet = writer.sheets[sheet_name]
            for position, width in enumerate(column_widths, start=1):
                worksheet.column_dimensions[get_column_letter(position)].width = width
    return output.getvalue()
