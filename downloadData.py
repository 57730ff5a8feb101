import logging
from decimal import Decimal

from appConfig import configure_logging, load_config
from dynamoStore import DynamoStore
from entitySchemas import SCHEMAS
from fieldConversion import to_string
from httpResponses import date_string, error_response, excel_response, not_found, request_context
from sheetIO import build_workbook

logger = logging.getLogger(__name__)


def lambda_handler(event, context):
    config = load_config()
    configure_logging(config)
    logger.info('Download request received: %s', request_context(event))

    # GET /{entity}/download
    entity = resolve_entity(event)
    schema = SCHEMAS.get(entity)
    if schema is None:
        return not_found('Download target does not exist')
    return handle_download(event, DynamoStore.from_config(config), schema)


def resolve_entity(event):
    path_params = event.get('pathParameters') or {}
    if path_params.get('entity'):
        return path_params['entity']
    parts = [part for part in (event.get('path') or '').split('/') if part]
    # /students/download -> students
    if len(parts) >= 2 and parts[-1] == 'download':
        return parts[-2]
    return None


def class_filter(event):
    query_params = event.get('queryStringParameters') or {}
    classes = query_params.get('classes') or ''
    return [c.strip() for c in classes.split(',') if c.strip()]


def plain_value(value):
    # DynamoDB numbers come back as Decimal
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


def export_rows(schema, items):
    if schema.sort_key:
        items = sorted(items, key=schema.sort_key)
    else:
        items = sorted(items, key=lambda item: to_string(item.get(schema.key_field)))
    if schema.export_row:
        rows = [schema.export_row(item) for item in items]
    else:
        rows = [{column: item.get(column, '') for column in schema.export_columns} for item in items]
    return [{column: plain_value(value) for column, value in row.items()} for row in rows]


def handle_download(event, store, schema):
    try:
        items = store.scan(schema.table)

        # teachers only see their own classes, admins pass no filter
        classes = class_filter(event) if schema.plural == 'students' else []
        if classes:
            items = [item for item in items if to_string(item.get('class')) in classes]

        content = build_workbook(
            export_rows(schema, items),
            list(schema.export_columns),
            schema.sheet_name,
            schema.column_widths,
        )
        logger.info('Exported %d %s', len(items), schema.plural)
        return excel_response(content, f'{schema.plural}_{date_string()}.xlsx')
    except Exception as e:
        logger.exception('Error downloading %s', schema.plural)
        return error_response(500, f'Failed to download {schema.name} data', error=str(e))
