import logging
import os
from collections import namedtuple

# Environment driven settings. Same code path for AWS and DynamoDB Local,
# only the endpoint and credentials differ.

Config = namedtuple('Config', [
    'mode',
    'region',
    'endpoint',
    'access_key_id',
    'secret_access_key',
    'table_names',
    'log_level',
])

DEFAULT_TABLE_NAMES = {
    'students': 'ho-yu-students',
    'teachers': 'ho-yu-teachers',
    'games': 'ho-yu-games',
}


def load_config(environ=None):
    env = os.environ if environ is None else environ
    mode = env.get('DYNAMODB_MODE', 'aws').strip().lower()
    endpoint = None
    access_key_id = env.get('AWS_ACCESS_KEY_ID')
    secret_access_key = env.get('AWS_SECRET_ACCESS_KEY')
    if mode == 'local':
        endpoint = env.get('DYNAMODB_ENDPOINT', 'http://localhost:8002')
        # DynamoDB Local accepts any credentials but boto3 still wants some
        access_key_id = access_key_id or 'local'
        secret_access_key = secret_access_key or 'local'

    return Config(
        mode=mode,
        region=env.get('AWS_REGION', 'us-east-1'),
        endpoint=endpoint,
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        table_names={
            'students': env.get('STUDENTS_TABLE_NAME', DEFAULT_TABLE_NAMES['students']),
            'teachers': env.get('TEACHERS_TABLE_NAME', DEFAULT_TABLE_NAMES['teachers']),
            'games': env.get('GAMES_TABLE_NAME', DEFAULT_TABLE_NAMES['games']),
        },
        log_level=env.get('LOG_LEVEL', 'INFO').upper(),
    )


def configure_logging(config):
    """Lambda installs its own root handler; locally fall back to basicConfig."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format='%(asctime)s %(levelname)s %(name)s %(message)s')
    root.setLevel(config.log_level)


def with_endpoint(config, endpoint):
    """Point an existing config at an explicit (local) endpoint."""
    return config._replace(
        mode='local',
        endpoint=endpoint,
        access_key_id=config.access_key_id or 'local',
        secret_access_key=config.secret_access_key or 'local',
    )
