import argparse
import logging

from appConfig import configure_logging, load_config, with_endpoint
from dynamoStore import DynamoStore, KEY_FIELDS
from httpResponses import current_timestamp
from upsertPipeline import STORE_ERRORS, chunks

logger = logging.getLogger(__name__)

# Sample data for DynamoDB Local: three teachers (one admin), a handful of
# students in their classes and games whose ids match their Scratch projects.

SEED_TEACHERS = [
    {'teacher_id': 'TCH001', 'name': 'Mr. Wong', 'password': 'teacher123',
     'responsible_class': ['1A', '2A'], 'is_admin': False},
    {'teacher_id': 'TCH002', 'name': 'Ms. Chan', 'password': 'teacher123',
     'responsible_class': ['1B'], 'is_admin': False},
    {'teacher_id': 'TCH003', 'name': 'Dr. Lee', 'password': 'admin123',
     'responsible_class': ['2B'], 'is_admin': True},
]

SEED_STUDENTS = [
    {'student_id': 'STU001', 'name_1': 'Chan Tai Man', 'name_2': '陳大文', 'marks': 150,
     'class': '1A', 'class_no': '01', 'teacher_id': 'TCH001', 'password': '123'},
    {'student_id': 'STU002', 'name_1': 'Wong Siu Ming', 'name_2': '黃小明', 'marks': 80,
     'class': '1A', 'class_no': '02', 'teacher_id': 'TCH001', 'password': '123'},
    {'student_id': 'STU003', 'name_1': 'Lee Ka Yan', 'name_2': '李嘉欣', 'marks': 230,
     'class': '1B', 'class_no': '01', 'teacher_id': 'TCH002', 'password': '123'},
    {'student_id': 'STU004', 'name_1': 'Cheung Chi Ho', 'name_2': '張志豪', 'marks': 40,
     'class': '2A', 'class_no': '01', 'teacher_id': 'TCH001', 'password': '123'},
    {'student_id': 'STU005', 'name_1': 'Lam Mei Ling', 'name_2': '林美玲', 'marks': 0,
     'class': '2B', 'class_no': '01', 'teacher_id': 'TCH003', 'password': '123'},
]

SEED_GAMES = [
    {'game_id': '1168960672', 'game_name': 'Chinese Radicals', 'student_id': 'STU001',
     'subject': 'Chinese Language', 'difficulty': 'Beginner', 'teacher_id': 'TCH001',
     'scratch_id': 'GCQ001', 'accumulated_click': 12,
     'description': 'Match characters to their radicals'},
    {'game_id': '1168960673', 'game_name': 'Spelling Bee', 'student_id': 'STU003',
     'subject': 'English Language', 'difficulty': 'Intermediate', 'teacher_id': 'TCH002',
     'scratch_id': 'GCQ002', 'accumulated_click': 5,
     'description': 'Spell the word you hear'},
    {'game_id': '1168960674', 'game_name': 'Fraction Maze', 'student_id': 'STU004',
     'subject': 'Mathematics', 'difficulty': 'Advanced', 'teacher_id': 'TCH001',
     'scratch_id': 'GCQ003', 'accumulated_click': 0,
     'description': 'Find the way out by adding fractions'},
]

CHECK_STUDENT_ID = 'CHECK_STUDENT_001'


class CheckFailed(Exception):
    pass


def seed_records(now=None):
    """Seed records per table, stamped with the given time."""
    now = now or current_timestamp()
    stamps = {'created_at': now, 'updated_at': now}
    return {
        'teachers': [dict(item, last_login=now, **stamps) for item in SEED_TEACHERS],
        'students': [dict(item, last_login=now, last_update=now, **stamps) for item in SEED_STUDENTS],
        'games': [
            dict(item, scratch_api=f'https://scratch.mit.edu/projects/{item["game_id"]}',
                 last_update=now, **stamps)
            for item in SEED_GAMES
        ],
    }


def seed_table(store, name, items):
    """Write items through batch_put; unprocessed items get a single put."""
    batches = list(chunks(items))
    logger.info('Seeding %d %s in %d batch(es)', len(items), name, len(batches))
    for number, batch in enumerate(batches, start=1):
        unprocessed = store.batch_put(name, batch)
        for item in unprocessed:
            store.put_item(name, item)
        logger.info('Batch %d/%d done (%d items)', number, len(batches), len(batch))
    return len(items)


def seed_tables(store, records=None):
    """Seed teachers, students and games. Returns {table: count}."""
    records = records or seed_records()
    counts = {}
    for name in ('teachers', 'students', 'games'):
        counts[name] = seed_table(store, name, records.get(name, []))
    logger.info('Seeded %s', ', '.join(f'{count} {name}' for name, count in counts.items()))
    return counts


def check_connection(store):
    """
    Round trip a throwaway student through create, read, update, scan and
    delete. Returns a list of (step, passed, detail) tuples.
    """
    key = {KEY_FIELDS['students']: CHECK_STUDENT_ID}
    now = current_timestamp()

    def create():
        store.put_item('students', dict(key, name_1='Check Student', marks=100, class_no='01',
                                        password='123', last_update=now))
        return 'created'

    def read():
        item = store.get_item('students', key)
        if not item or item.get('name_1') != 'Check Student':
            raise CheckFailed('stored student not found')
        return 'read back'

    def update():
        item = store.add_to_attribute('students', key, 'marks', 10)
        if item.get('marks') != 110:
            raise CheckFailed(f'expected 110 marks, got {item.get("marks")}')
        return 'marks now 110'

    def scan():
        return f'{len(store.scan("students"))} student(s)'

    def delete():
        store.delete_item('students', key)
        if store.get_item('students', key) is not None:
            raise CheckFailed('student still present')
        return 'deleted'

    results = []
    for step, action in (('CREATE', create), ('READ', read), ('UPDATE', update),
                         ('SCAN', scan), ('DELETE', delete)):
        try:
            detail = action()
        except (CheckFailed, *STORE_ERRORS) as e:
            logger.error('%s failed: %s', step, e)
            results.append((step, False, str(e)))
            continue
        logger.info('%s passed: %s', step, detail)
        results.append((step, True, detail))
    return results


def main(argv=None):
    parser = argparse.ArgumentParser(description='Load sample data into the local tables')
    parser.add_argument('--endpoint', help='DynamoDB endpoint, overrides DYNAMODB_ENDPOINT')
    parser.add_argument('--check', action='store_true',
                        help='run a create/read/update/scan/delete check instead of seeding')
    args = parser.parse_args(argv)

    config = load_config()
    if args.endpoint:
        config = with_endpoint(config, args.endpoint)
    configure_logging(config)

    store = DynamoStore.from_config(config)
    if args.check:
        results = check_connection(store)
        failed = [step for step, passed, _ in results if not passed]
        logger.info('%d/%d checks passed', len(results) - len(failed), len(results))
        return 1 if failed else 0

    seed_tables(store)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
