import logging

from botocore.exceptions import BotoCoreError, ClientError

from appConfig import configure_logging, load_config
from dynamoStore import DynamoStore
from entitySchemas import MARKS_BY_DIFFICULTY
from httpResponses import (
    bad_request,
    internal_error,
    not_found,
    parse_request_body,
    request_context,
    success_response,
)

logger = logging.getLogger(__name__)


def lambda_handler(event, context):
    config = load_config()
    configure_logging(config)
    logger.info('Click request received: %s', request_context(event))
    return handle_click(event, DynamoStore.from_config(config))


# POST /games/{gameId}/click
def handle_click(event, store):
    try:
        game_id = (event.get('pathParameters') or {}).get('gameId')
        if not game_id:
            logger.warning('Click request missing gameId parameter')
            return bad_request('Missing gameId parameter')

        body = parse_request_body(event)

        game = store.get_item('games', {'game_id': game_id})
        if not game:
            logger.warning('Game not found: %s', game_id)
            return not_found('Game not found')

        # ADD is applied by DynamoDB itself, concurrent clicks cannot be lost
        updated_game = store.add_to_attribute('games', {'game_id': game_id}, 'accumulated_click', 1)

        marks = None
        student_id = body.get('student_id')
        if student_id and body.get('role') == 'student':
            marks = award_marks(store, student_id, game.get('difficulty'))

        logger.info('Game click recorded: game=%s clicks=%s student=%s',
                    game_id, updated_game.get('accumulated_click'), student_id)

        payload = {'accumulated_click': updated_game.get('accumulated_click')}
        if marks is not None:
            payload['marks'] = marks
        return success_response(payload)

    except Exception as e:
        logger.exception('Error incrementing game click')
        return internal_error(e)


def award_marks(store, student_id, difficulty):
    """Add the difficulty's marks to a student; returns the new total or None."""
    marks_to_add = MARKS_BY_DIFFICULTY.get(difficulty)
    if not marks_to_add:
        logger.info('No marks defined for difficulty %r', difficulty)
        return None
    try:
        student = store.add_to_attribute('students', {'student_id': student_id}, 'marks', marks_to_add)
    except (ClientError, BotoCoreError) as e:
        # the click itself is already counted
        logger.error('Failed to update marks for student %s: %s', student_id, e)
        return None
    logger.info('Student %s earned %d marks (%s)', student_id, marks_to_add, difficulty)
    return student.get('marks')
