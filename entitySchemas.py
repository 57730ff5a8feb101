from dataclasses import dataclass

from fieldConversion import (
    scratch_project_id,
    to_boolean,
    to_date_string,
    to_number,
    to_string,
    to_string_list,
)

# Marks awarded to a student for each click on a game of that difficulty
MARKS_BY_DIFFICULTY = {
    'Beginner': 5,
    'Intermediate': 10,
    'Advanced': 15,
}


@dataclass(frozen=True)
class EntitySchema:
    """
    Everything the upload/download pipeline needs to know about one table.

    tracked_fields decide whether an upsert really changed the record,
    sticky_fields are carried over from the stored record on every upload,
    touch_fields are the timestamps that only move when something changed.
    """
    name: str
    plural: str
    table: str
    key_field: str
    build_record: object
    expected_headers: tuple
    tracked_fields: tuple
    sticky_fields: tuple = ('created_at',)
    touch_fields: tuple = ('updated_at',)
    required_headers: tuple = ()
    export_columns: tuple = ()
    column_widths: tuple = ()
    sheet_name: str = ''
    export_row: object = None
    sort_key: object = None

    @property
    def required(self):
        return self.required_headers or (self.key_field,)


def _previous(existing, name):
    return existing.get(name) if existing else None


def _last_login(raw, existing, now):
    # keep the stored login time when the sheet leaves the column empty
    return to_date_string(raw.get('last_login')) or _previous(existing, 'last_login') or now


def build_student(raw, existing, now):
    return {
        'student_id': to_string(raw.get('student_id')),
        'name_1': to_string(raw.get('name_1')),
        'name_2': to_string(raw.get('name_2')),
        'marks': int(to_number(raw.get('marks'))),
        'class': to_string(raw.get('class')),
        'class_no': to_string(raw.get('class_no')),
        'last_login': _last_login(raw, existing, now),
        'last_update': now,
        'teacher_id': to_string(raw.get('teacher_id')),
        'password': to_string(raw.get('password')),
        'created_at': now,
        'updated_at': now,
    }


def build_teacher(raw, existing, now):
    return {
        'teacher_id': to_string(raw.get('teacher_id')),
        'name': to_string(raw.get('name')),
        'password': to_string(raw.get('password')),
        'responsible_class': to_string_list(raw.get('responsible_class')),
        'last_login': _last_login(raw, existing, now),
        'is_admin': to_boolean(raw.get('is_admin')),
        'created_at': now,
        'updated_at': now,
    }


def normalize_difficulty(value):
    text = to_string(value)
    for difficulty in MARKS_BY_DIFFICULTY:
        if text.lower() == difficulty.lower():
            return difficulty
    return text


def build_game(raw, existing, now):
    game_id = to_string(raw.get('game_id'))
    scratch_api = to_string(raw.get('scratch_api'))
    project_id = scratch_project_id(scratch_api)
    if project_id is not None and project_id != game_id:
        raise ValueError(f'game_id {game_id} does not match scratch_api project id {project_id}')

    return {
        'game_id': game_id,
        'game_name': to_string(raw.get('game_name')),
        'student_id': to_string(raw.get('student_id')),
        'subject': to_string(raw.get('subject')),
        'difficulty': normalize_difficulty(raw.get('difficulty')),
        'teacher_id': to_string(raw.get('teacher_id')),
        'scratch_id': to_string(raw.get('scratch_id')),
        'scratch_api': scratch_api,
        'accumulated_click': int(to_number(raw.get('accumulated_click'))),
        'description': to_string(raw.get('description')),
        'last_update': now,
        'created_at': now,
        'updated_at': now,
    }


def _class_order(item):
    # numeric class numbers first, in numeric order: 2 before 10
    number = to_string(item.get('class_no'))
    position = (0, int(number), '') if number.isdigit() else (1, 0, number)
    return to_string(item.get('class')), position


def _teacher_export_row(item):
    row = {column: item.get(column, '') for column in TEACHERS.export_columns}
    row['responsible_class'] = ', '.join(to_string_list(item.get('responsible_class')))
    row['is_admin'] = 'Yes' if item.get('is_admin') else 'No'
    return row


STUDENTS = EntitySchema(
    name='student',
    plural='students',
    table='students',
    key_field='student_id',
    build_record=build_student,
    expected_headers=(
        'student_id', 'name_1', 'name_2', 'marks', 'class', 'class_no',
        'last_login', 'last_update', 'teacher_id', 'password',
    ),
    tracked_fields=('name_1', 'name_2', 'marks', 'class', 'class_no', 'teacher_id', 'password'),
    touch_fields=('last_update', 'updated_at'),
    export_columns=(
        'student_id', 'name_1', 'name_2', 'marks', 'class', 'class_no',
        'last_login', 'last_update', 'teacher_id', 'password',
    ),
    column_widths=(12, 20, 20, 8, 8, 10, 20, 20, 12, 15),
    sheet_name='Students',
    sort_key=_class_order,
)

TEACHERS = EntitySchema(
    name='teacher',
    plural='teachers',
    table='teachers',
    key_field='teacher_id',
    build_record=build_teacher,
    expected_headers=('teacher_id', 'name', 'password', 'responsible_class', 'is_admin', 'last_login'),
    tracked_fields=('name', 'password', 'responsible_class', 'is_admin'),
    export_columns=('teacher_id', 'name', 'responsible_class', 'last_login', 'is_admin', 'password'),
    column_widths=(12, 20, 30, 20, 10, 15),
    sheet_name='Teachers',
    export_row=_teacher_export_row,
)

GAMES = EntitySchema(
    name='game',
    plural='games',
    table='games',
    key_field='game_id',
    build_record=build_game,
    expected_headers=(
        'game_id', 'game_name', 'student_id', 'subject', 'difficulty', 'teacher_id',
        'scratch_id', 'scratch_api', 'accumulated_click', 'description',
    ),
    tracked_fields=(
        'game_name', 'student_id', 'subject', 'difficulty', 'teacher_id',
        'scratch_id', 'scratch_api', 'description',
    ),
    sticky_fields=('created_at', 'accumulated_click'),
    touch_fields=('last_update', 'updated_at'),
    export_columns=(
        'game_id', 'game_name', 'student_id', 'subject', 'difficulty', 'teacher_id',
        'last_update', 'scratch_id', 'scratch_api', 'accumulated_click', 'description',
    ),
    column_widths=(12, 30, 12, 25, 15, 12, 20, 15, 40, 15, 40),
    sheet_name='Games',
)

SCHEMAS = {schema.plural: schema for schema in (STUDENTS, TEACHERS, GAMES)}
