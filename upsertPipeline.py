import logging

from botocore.exceptions import BotoCoreError, ClientError

from dynamoStore import BATCH_SIZE
from fieldConversion import map_row_to_record, to_string
from httpResponses import current_timestamp
from sheetIO import decode_upload, validate_headers, validate_record_count

logger = logging.getLogger(__name__)

INSERT = 'insert'
UPDATE = 'update'
UNCHANGED = 'unchanged'

# What a failing store call can raise; anything else is a bug and propagates
STORE_ERRORS = (ClientError, BotoCoreError)


def chunks(items, size=BATCH_SIZE):
    for start in range(0, len(items), size):
        yield items[start:start + size]


class UploadResult:
    def __init__(self):
        self.processed = 0
        self.inserted = 0
        self.updated = 0
        self.unchanged = 0
        self.errors = []

    def count(self, action):
        self.processed += 1
        if action == INSERT:
            self.inserted += 1
        elif action == UPDATE:
            self.updated += 1
        else:
            self.unchanged += 1

    def uncount(self, action):
        self.processed -= 1
        if action == INSERT:
            self.inserted -= 1
        elif action == UPDATE:
            self.updated -= 1
        else:
            self.unchanged -= 1

    def as_dict(self):
        return {
            'processed': self.processed,
            'inserted': self.inserted,
            'updated': self.updated,
            'unchanged': self.unchanged,
            'errors': list(self.errors),
        }


class WriteIntent:
    def __init__(self, row_number, action, record):
        self.row_number = row_number
        self.action = action
        self.record = record

    def __repr__(self):
        return f'WriteIntent(row={self.row_number}, action={self.action!r})'


# ------------------------------
# Row parsing
# ------------------------------

def parse_rows(schema, headers, data_rows, result):
    """
    Map data rows onto the header row. Returns [(row_number, record)];
    rows without a primary key become errors. Row numbers are spreadsheet
    rows, the header being row 1.
    """
    parsed = []
    for index, row in enumerate(data_rows):
        row_number = index + 2
        record = map_row_to_record(headers, row)
        if not to_string(record.get(schema.key_field)):
            result.errors.append(f'Row {row_number}: Missing {schema.key_field}')
            continue
        parsed.append((row_number, record))
    return parsed


# ------------------------------
# Reconciler
# ------------------------------

def fetch_existing(store, schema, keys):
    """Stored records for the given key values, looked up BATCH_SIZE at a time."""
    existing = {}
    unique_keys = list(dict.fromkeys(keys))
    for batch in chunks(unique_keys):
        try:
            items = store.batch_get(schema.table, [{schema.key_field: key} for key in batch])
            for item in items:
                existing[to_string(item.get(schema.key_field))] = item
        except STORE_ERRORS as e:
            logger.error('Error batch getting %s: %s', schema.plural, e)
            for key in batch:
                try:
                    item = store.get_item(schema.table, {schema.key_field: key})
                except STORE_ERRORS as err:
                    logger.error('Error getting %s %s: %s', schema.name, key, err)
                    continue
                if item:
                    existing[key] = item
    return existing


def has_changes(schema, record, existing):
    return any(record.get(name) != existing.get(name) for name in schema.tracked_fields)


def merge_record(schema, raw, existing, now):
    """Build the record to store and classify it against the stored one."""
    record = schema.build_record(raw, existing, now)
    if not existing:
        return INSERT, record

    for name in schema.sticky_fields:
        if existing.get(name) is not None:
            record[name] = existing[name]

    if has_changes(schema, record, existing):
        return UPDATE, record

    # nothing tracked moved: keep the stored timestamps
    for name in schema.touch_fields:
        if name in existing:
            record[name] = existing[name]
    return UNCHANGED, record


def reconcile(store, schema, parsed_rows, result, now=None):
    now = now or current_timestamp()
    keys = [to_string(record[schema.key_field]) for _, record in parsed_rows]
    existing_records = fetch_existing(store, schema, keys)

    intents = []
    for row_number, raw in parsed_rows:
        key = to_string(raw[schema.key_field])
        try:
            action, record = merge_record(schema, raw, existing_records.get(key), now)
        except (ValueError, TypeError, ArithmeticError) as e:
            result.errors.append(f'Row {row_number}: {e}')
            continue
        intents.append(WriteIntent(row_number, action, record))
    return intents


# ------------------------------
# Batch writer
# ------------------------------

def _write_single(store, schema, intent, result):
    try:
        store.put_item(schema.table, intent.record)
        return True
    except STORE_ERRORS as e:
        key = intent.record.get(schema.key_field)
        logger.error('Error writing %s %s: %s', schema.name, key, e)
        result.errors.append(f'{schema.name.capitalize()} {key}: {e}')
        result.uncount(intent.action)
        return False


def write_intents(store, schema, intents, result):
    """
    Persist every intent BATCH_SIZE at a time. Unchanged rows are written
    too, carrying their stored timestamps, so untracked columns such as
    last_login still land.
    """
    for intent in intents:
        result.count(intent.action)

    for batch in chunks(intents):
        try:
            unprocessed = store.batch_put(schema.table, [intent.record for intent in batch])
        except STORE_ERRORS as e:
            logger.error('Error batch writing %s: %s', schema.plural, e)
            for intent in batch:
                _write_single(store, schema, intent, result)
            continue

        if not unprocessed:
            continue
        logger.warning('Batch write had %d unprocessed items for %s', len(unprocessed), schema.plural)
        by_key = {to_string(intent.record[schema.key_field]): intent for intent in batch}
        for item in unprocessed:
            _write_single(store, schema, by_key[to_string(item[schema.key_field])], result)
    return result


# ------------------------------
# Whole upload
# ------------------------------

def run_upload(store, schema, body, now=None):
    """
    Decode, validate, reconcile and write one uploaded spreadsheet.
    Raises sheetIO.UploadError for request problems; returns UploadResult.
    """
    headers, data_rows = decode_upload(body)
    validate_headers(headers, schema.required, schema.expected_headers)
    validate_record_count(len(data_rows))

    result = UploadResult()
    parsed_rows = parse_rows(schema, headers, data_rows, result)
    intents = reconcile(store, schema, parsed_rows, result, now=now)
    write_intents(store, schema, intents, result)
    logger.info(
        'Upload of %s finished: %d processed (%d inserted, %d updated, %d unchanged), %d errors',
        schema.plural, result.processed, result.inserted, result.updated,
        result.unchanged, len(result.errors),
    )
    return result
