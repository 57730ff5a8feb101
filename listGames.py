import logging

from appConfig import configure_logging, load_config
from dynamoStore import DynamoStore
from httpResponses import internal_error, json_response

logger = logging.getLogger(__name__)


def lambda_handler(event, context):
    config = load_config()
    configure_logging(config)
    return handle_list_games(event, DynamoStore.from_config(config))


# GET /games
def handle_list_games(event, store):
    try:
        games = store.scan('games')
        logger.info('Fetched %d games', len(games))
        return json_response(200, games)
    except Exception as e:
        logger.exception('Error fetching games')
        return internal_error(e)
