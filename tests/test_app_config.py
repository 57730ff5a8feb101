from appConfig import DEFAULT_TABLE_NAMES, load_config, with_endpoint


def test_defaults_to_aws_mode():
    config = load_config({})
    assert config.mode == 'aws'
    assert config.endpoint is None
    assert config.region == 'us-east-1'
    assert config.table_names == DEFAULT_TABLE_NAMES
    assert config.log_level == 'INFO'


def test_local_mode_fills_endpoint_and_credentials():
    config = load_config({'DYNAMODB_MODE': 'LOCAL'})
    assert config.endpoint == 'http://localhost:8002'
    assert (config.access_key_id, config.secret_access_key) == ('local', 'local')


def test_table_names_from_environment():
    config = load_config({
        'STUDENTS_TABLE_NAME': 'dev-students',
        'GAMES_TABLE_NAME': 'dev-games',
        'LOG_LEVEL': 'debug',
    })
    assert config.table_names['students'] == 'dev-students'
    assert config.table_names['teachers'] == 'ho-yu-teachers'
    assert config.table_names['games'] == 'dev-games'
    assert config.log_level == 'DEBUG'


def test_with_endpoint_switches_to_local():
    config = with_endpoint(load_config({}), 'http://localhost:9000')
    assert config.mode == 'local'
    assert config.endpoint == 'http://localhost:9000'
    assert (config.access_key_id, config.secret_access_key) == ('local', 'local')
