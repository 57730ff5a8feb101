import base64
import copy
import csv
import io
import json

import pytest
from botocore.exceptions import ClientError
from openpyxl import Workbook

from dynamoStore import BATCH_SIZE, KEY_FIELDS


def store_error(message='Simulated failure', operation='PutItem'):
    return ClientError(
        {'Error': {'Code': 'ProvisionedThroughputExceededException', 'Message': message}},
        operation,
    )


class MemoryStore:
    """Dict backed stand-in for DynamoStore with switches to inject failures."""

    def __init__(self):
        self.tables = {name: {} for name in KEY_FIELDS}
        self.fail_batch_get = False
        self.fail_batch_put = False
        self.failing_get_keys = set()
        self.failing_put_keys = set()
        self.unprocessed_keys = set()
        self.failing_add_tables = set()
        self.calls = []

    def _key(self, name, key_or_item):
        return key_or_item[KEY_FIELDS[name]]

    def seed(self, name, *items):
        for item in items:
            self.tables[name][self._key(name, item)] = copy.deepcopy(item)

    def get_item(self, name, key):
        self.calls.append(('get_item', name))
        if self._key(name, key) in self.failing_get_keys:
            raise store_error('get failed', 'GetItem')
        item = self.tables[name].get(self._key(name, key))
        return copy.deepcopy(item) if item else None

    def put_item(self, name, item):
        self.calls.append(('put_item', name))
        if self._key(name, item) in self.failing_put_keys:
            raise store_error('put failed')
        self.tables[name][self._key(name, item)] = copy.deepcopy(item)

    def delete_item(self, name, key):
        self.calls.append(('delete_item', name))
        self.tables[name].pop(self._key(name, key), None)

    def batch_get(self, name, keys):
        assert len(keys) <= BATCH_SIZE
        self.calls.append(('batch_get', name))
        if self.fail_batch_get:
            raise store_error('batch get failed', 'BatchGetItem')
        found = (self.tables[name].get(self._key(name, key)) for key in keys)
        return [copy.deepcopy(item) for item in found if item]

    def batch_put(self, name, items):
        assert len(items) <= BATCH_SIZE
        self.calls.append(('batch_put', name))
        if self.fail_batch_put:
            raise store_error('batch write failed', 'BatchWriteItem')
        unprocessed = []
        for item in items:
            if self._key(name, item) in self.unprocessed_keys:
                unprocessed.append(copy.deepcopy(item))
            else:
                self.tables[name][self._key(name, item)] = copy.deepcopy(item)
        return unprocessed

    def add_to_attribute(self, name, key, attribute, amount):
        self.calls.append(('add_to_attribute', name))
        if name in self.failing_add_tables:
            raise store_error('update failed', 'UpdateItem')
        item = self.tables[name].setdefault(self._key(name, key), dict(key))
        item[attribute] = item.get(attribute, 0) + amount
        return copy.deepcopy(item)

    def scan(self, name):
        self.calls.append(('scan', name))
        return [copy.deepcopy(item) for item in self.tables[name].values()]

    def count(self, method):
        return sum(1 for call in self.calls if call[0] == method)


@pytest.fixture
def store():
    return MemoryStore()


def xlsx_bytes(rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(list(row))
    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def csv_bytes(rows):
    output = io.StringIO()
    writer = csv.writer(output)
    for row in rows:
        writer.writerow(['' if cell is None else cell for cell in row])
    return output.getvalue().encode('utf-8')


def upload_body(rows, fmt='xlsx'):
    content = xlsx_bytes(rows) if fmt == 'xlsx' else csv_bytes(rows)
    return {'file': base64.b64encode(content).decode('ascii')}


def api_event(body=None, path_params=None, query=None, path='/', method='POST'):
    return {
        'httpMethod': method,
        'path': path,
        'pathParameters': path_params,
        'queryStringParameters': query,
        'requestContext': {'requestId': 'test-request'},
        'body': json.dumps(body) if body is not None else None,
    }


def response_json(response):
    return json.loads(response['body'])


STUDENT_HEADERS = [
    'student_id', 'name_1', 'name_2', 'marks', 'class', 'class_no',
    'last_login', 'last_update', 'teacher_id', 'password',
]

TEACHER_HEADERS = ['teacher_id', 'name', 'password', 'responsible_class', 'is_admin', 'last_login']

GAME_HEADERS = [
    'game_id', 'game_name', 'student_id', 'subject', 'difficulty', 'teacher_id',
    'scratch_id', 'scratch_api', 'accumulated_click', 'description',
]


def student_row(student_id, name='Chan Tai Man', marks=0, klass='1A', class_no=1):
    return [student_id, name, '陳大文', marks, klass, class_no, None, None, 'TCH001', '123']


def game_row(game_id, name='Maze Runner', difficulty='Beginner', clicks=None):
    return [
        game_id, name, 'STU001', 'Mathematics', difficulty, 'TCH001',
        'GCQ', f'https://scratch.mit.edu/projects/{game_id}', clicks, 'A maze game',
    ]
