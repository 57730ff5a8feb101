import base64
import io
from decimal import Decimal

from openpyxl import load_workbook

from conftest import api_event
from downloadData import handle_download, resolve_entity
from entitySchemas import GAMES, STUDENTS, TEACHERS
from listGames import handle_list_games


def workbook_rows(response):
    content = base64.b64decode(response['body'])
    sheet = load_workbook(io.BytesIO(content)).active
    return sheet, [list(row) for row in sheet.iter_rows(values_only=True)]


def test_students_download_sorted_by_class(store):
    store.seed(
        'students',
        {'student_id': 'S3', 'class': '2A', 'class_no': '1', 'marks': Decimal(5), 'password': 'x'},
        {'student_id': 'S2', 'class': '1A', 'class_no': '2', 'marks': Decimal(7), 'password': 'y'},
        {'student_id': 'S1', 'class': '1A', 'class_no': '1', 'marks': Decimal(9), 'password': 'z'},
    )

    response = handle_download(api_event(method='GET'), store, STUDENTS)

    assert response['statusCode'] == 200
    assert response['isBase64Encoded'] is True
    assert response['headers']['Content-Disposition'].startswith('attachment; filename="students_')
    sheet, rows = workbook_rows(response)
    assert sheet.title == 'Students'
    assert rows[0] == list(STUDENTS.export_columns)
    assert [row[0] for row in rows[1:]] == ['S1', 'S2', 'S3']
    assert rows[1][3] == 9
    assert sheet.column_dimensions['B'].width == 20


def test_students_download_orders_class_numbers_numerically(store):
    store.seed(
        'students',
        {'student_id': 'S10', 'class': '1A', 'class_no': '10'},
        {'student_id': 'S2', 'class': '1A', 'class_no': '2'},
        {'student_id': 'SX', 'class': '1A', 'class_no': 'X'},
        {'student_id': 'S1', 'class': '1A', 'class_no': Decimal(1)},
    )

    response = handle_download(api_event(method='GET'), store, STUDENTS)

    _, rows = workbook_rows(response)
    assert [row[0] for row in rows[1:]] == ['S1', 'S2', 'S10', 'SX']


def test_students_download_class_filter(store):
    store.seed(
        'students',
        {'student_id': 'S1', 'class': '1A', 'class_no': '1'},
        {'student_id': 'S2', 'class': '2B', 'class_no': '1'},
        {'student_id': 'S3', 'class': '3C', 'class_no': '1'},
    )

    response = handle_download(api_event(method='GET', query={'classes': '1A,3C'}), store, STUDENTS)

    _, rows = workbook_rows(response)
    assert [row[0] for row in rows[1:]] == ['S1', 'S3']


def test_teachers_download_formats_lists_and_flags(store):
    store.seed('teachers', {
        'teacher_id': 'TCH001', 'name': 'Ms Wong', 'responsible_class': ['1A', '2B'],
        'is_admin': True, 'password': 'pw', 'last_login': '2025-01-01T00:00:00.000Z',
    })

    _, rows = workbook_rows(handle_download(api_event(method='GET'), store, TEACHERS))

    header, row = rows
    record = dict(zip(header, row))
    assert record['responsible_class'] == '1A, 2B'
    assert record['is_admin'] == 'Yes'


def test_games_download_sorted_by_id(store):
    store.seed('games', {'game_id': '20', 'accumulated_click': Decimal(3)}, {'game_id': '10'})

    _, rows = workbook_rows(handle_download(api_event(method='GET'), store, GAMES))

    assert [row[0] for row in rows[1:]] == ['10', '20']


def test_download_failure_is_500(store, monkeypatch):
    def boom(name):
        raise RuntimeError('scan failed')

    monkeypatch.setattr(store, 'scan', boom)

    response = handle_download(api_event(method='GET'), store, GAMES)

    assert response['statusCode'] == 500
    assert 'Failed to download game data' in response['body']


def test_resolve_download_entity():
    assert resolve_entity({'path': '/teachers/download'}) == 'teachers'
    assert resolve_entity({'path': '/teachers'}) is None


def test_list_games(store):
    store.seed('games', {'game_id': '1', 'accumulated_click': Decimal(2)})

    response = handle_list_games(api_event(method='GET'), store)

    assert response['statusCode'] == 200
    assert response['body'] == '[{"game_id": "1", "accumulated_click": 2}]'
