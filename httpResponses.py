import base64
import json
import logging
from datetime import datetime, timezone
from decimal import Decimal

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'GET, POST, PUT, DELETE, OPTIONS',
    'Access-Control-Allow-Headers': 'Content-Type, Authorization',
}

JSON_HEADERS = {'Content-Type': 'application/json', **CORS_HEADERS}

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


# DynamoDB hands numbers back as Decimal, which json cannot serialise
class DecimalEncoder(json.JSONEncoder):
    def default(self, o):
        if isinstance(o, Decimal):
            return int(o) if o == o.to_integral_value() else float(o)
        if isinstance(o, set):
            return sorted(o)
        return super(DecimalEncoder, self).default(o)


def json_response(status_code, payload):
    return {
        'statusCode': status_code,
        'headers': dict(JSON_HEADERS),
        'body': json.dumps(payload, cls=DecimalEncoder),
    }


def success_response(data, status_code=200):
    return json_response(status_code, {'success': True, **data})


def error_response(status_code, message, **extra):
    return json_response(status_code, {'success': False, 'message': message, **extra})


def bad_request(message, **extra):
    return error_response(400, message, **extra)


def unauthorized(message='Unauthorized'):
    return error_response(401, message)


def not_found(message='Resource not found'):
    return error_response(404, message)


def internal_error(error, message='Internal server error'):
    # the exception text is echoed back to the caller on purpose
    return error_response(500, message, error=str(error))


def excel_response(content, filename):
    return {
        'statusCode': 200,
        'headers': {
            'Content-Type': XLSX_CONTENT_TYPE,
            'Content-Disposition': f'attachment; filename="{filename}"',
            **CORS_HEADERS,
        },
        'body': base64.b64encode(content).decode('ascii'),
        'isBase64Encoded': True,
    }


def parse_request_body(event):
    """JSON body of an API Gateway event; anything unparseable becomes {}."""
    body = (event or {}).get('body')
    if not body:
        return {}
    if (event or {}).get('isBase64Encoded'):
        try:
            body = base64.b64decode(body).decode('utf-8')
        except (ValueError, UnicodeDecodeError):
            logger.warning('Request body is not valid base64 text')
            return {}
    try:
        parsed = json.loads(body)
    except ValueError:
        logger.warning('Failed to parse request body as JSON')
        return {}
    return parsed if isinstance(parsed, dict) else {}


def request_context(event):
    """Fields worth attaching to every log line of a request."""
    event = event or {}
    return {
        'requestId': (event.get('requestContext') or {}).get('requestId'),
        'path': event.get('path'),
        'method': event.get('httpMethod'),
    }


def current_timestamp():
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def date_string():
    return datetime.now(timezone.utc).strftime('%Y-%m-%d')
