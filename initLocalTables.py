import argparse
import logging

from appConfig import configure_logging, load_config, with_endpoint
from dynamoStore import DynamoStore, create_tables
from seedLocalTables import seed_tables

logger = logging.getLogger(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(description='Create the students/teachers/games tables')
    parser.add_argument('--reset', action='store_true', help='drop and recreate existing tables')
    parser.add_argument('--seed', action='store_true', help='load sample data after creating')
    parser.add_argument('--endpoint', help='DynamoDB endpoint, overrides DYNAMODB_ENDPOINT')
    args = parser.parse_args(argv)

    config = load_config()
    if args.endpoint:
        config = with_endpoint(config, args.endpoint)
    configure_logging(config)

    store = DynamoStore.from_config(config)
    created = create_tables(store, reset=args.reset)
    logger.info('%d table(s) created', len(created))
    if args.seed:
        seed_tables(store)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
