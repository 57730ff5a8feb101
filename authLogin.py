import logging

from appConfig import configure_logging, load_config
from dynamoStore import DynamoStore
from httpResponses import (
    bad_request,
    internal_error,
    parse_request_body,
    request_context,
    success_response,
    unauthorized,
)

logger = logging.getLogger(__name__)


def lambda_handler(event, context):
    config = load_config()
    configure_logging(config)
    logger.info('Login request received: %s', request_context(event))
    return handle_login(event, DynamoStore.from_config(config))


def determine_role(user, table):
    if table == 'students':
        return 'student'
    return 'admin' if user.get('is_admin') else 'teacher'


def find_user(store, user_id):
    """Students first, then teachers. Returns (user, role) or (None, None)."""
    user = store.get_item('students', {'student_id': user_id})
    if user:
        return user, determine_role(user, 'students')
    user = store.get_item('teachers', {'teacher_id': user_id})
    if user:
        return user, determine_role(user, 'teachers')
    return None, None


def update_last_login(user_id, role):
    # not persisted yet, the timestamp only comes from uploads
    logger.info('Last login for %s %s not recorded', role, user_id)


# POST /auth/login
def handle_login(event, store):
    try:
        body = parse_request_body(event)
        user_id = body.get('id')
        password = body.get('password')

        if not user_id or password is None or password == '':
            logger.warning('Login attempt with missing credentials')
            return bad_request('Missing id or password')

        user, role = find_user(store, str(user_id).strip())

        # plain text comparison, passwords are stored as uploaded
        if not user or str(user.get('password', '')) != str(password):
            logger.warning('Login failed for %s: invalid credentials', user_id)
            return unauthorized('Invalid credentials')

        update_last_login(user_id, role)

        user = {k: v for k, v in user.items() if k != 'password'}
        logger.info('Login successful: %s (%s)', user_id, role)
        return success_response({'user': user, 'role': role})

    except Exception as e:
        logger.exception('Error in login handler')
        return internal_error(e)
