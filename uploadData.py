import logging

from appConfig import configure_logging, load_config
from dynamoStore import DynamoStore
from entitySchemas import SCHEMAS
from httpResponses import (
    bad_request,
    error_response,
    internal_error,
    not_found,
    parse_request_body,
    request_context,
    success_response,
)
from sheetIO import UploadError
from upsertPipeline import run_upload

logger = logging.getLogger(__name__)


def lambda_handler(event, context):
    config = load_config()
    configure_logging(config)
    logger.info('Upload request received: %s', request_context(event))

    # POST /upload/{entity}
    entity = resolve_entity(event)
    schema = SCHEMAS.get(entity)
    if schema is None:
        return not_found('Upload target does not exist')
    return handle_upload(event, DynamoStore.from_config(config), schema)


def resolve_entity(event):
    path_params = event.get('pathParameters') or {}
    if path_params.get('entity'):
        return path_params['entity']
    path = (event.get('path') or '').rstrip('/')
    return path.split('/')[-1] if path else None


# Upload a spreadsheet and upsert its rows
def handle_upload(event, store, schema, now=None):
    try:
        body = parse_request_body(event)
        result = run_upload(store, schema, body, now=now)
    except UploadError as e:
        logger.warning('Rejected %s upload: %s', schema.plural, e.message)
        return error_response(e.status_code, e.message, **e.extra)
    except Exception as e:
        logger.exception('Error uploading %s', schema.plural)
        return internal_error(e)

    if result.processed == 0:
        return bad_request(
            f'Failed to upload {schema.name} data. No records were successfully processed.',
            errors=result.errors or ['Unknown error occurred during upload'],
        )

    payload = result.as_dict()
    if not payload['errors']:
        del payload['errors']
    payload['message'] = (
        f'Successfully processed {result.processed} {schema.plural} '
        f'({result.inserted} inserted, {result.updated} updated, {result.unchanged} unchanged)'
    )
    return success_response(payload)
