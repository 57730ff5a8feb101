import logging

import boto3
from botocore.exceptions import ClientError

from appConfig import load_config

logger = logging.getLogger(__name__)

# DynamoDB hard limit for BatchGetItem / BatchWriteItem is 25 requests
BATCH_SIZE = 25

KEY_FIELDS = {
    'students': 'student_id',
    'teachers': 'teacher_id',
    'games': 'game_id',
}


class DynamoStore:
    """
    Key-value store used by every handler. Tables are addressed by their
    logical name ('students', 'teachers', 'games').

    get_item / put_item / batch_get / batch_put / add_to_attribute / scan
    is the whole interface; tests swap in an in-memory store with the same
    methods.
    """

    def __init__(self, dynamodb, table_names):
        self.dynamodb = dynamodb
        self.table_names = dict(table_names)

    @classmethod
    def from_config(cls, config=None):
        config = config or load_config()
        kwargs = {'region_name': config.region}
        if config.endpoint:
            kwargs['endpoint_url'] = config.endpoint
            kwargs['aws_access_key_id'] = config.access_key_id
            kwargs['aws_secret_access_key'] = config.secret_access_key
            logger.info('Connecting to local DynamoDB at %s', config.endpoint)
        else:
            logger.info('Connecting to AWS DynamoDB in %s', config.region)
        return cls(boto3.resource('dynamodb', **kwargs), config.table_names)

    def table(self, name):
        return self.dynamodb.Table(self.table_names[name])

    def get_item(self, name, key):
        response = self.table(name).get_item(Key=key)
        return response.get('Item')

    def put_item(self, name, item):
        self.table(name).put_item(Item=item)

    def delete_item(self, name, key):
        self.table(name).delete_item(Key=key)

    def batch_get(self, name, keys):
        """Items for up to BATCH_SIZE keys. Missing keys are simply absent."""
        if len(keys) > BATCH_SIZE:
            raise ValueError(f'batch_get accepts at most {BATCH_SIZE} keys')
        if not keys:
            return []
        table_name = self.table_names[name]
        request = {table_name: {'Keys': keys}}
        items = []
        # BatchGetItem can hand back part of the request when throttled
        while request:
            response = self.dynamodb.batch_get_item(RequestItems=request)
            items.extend(response.get('Responses', {}).get(table_name, []))
            request = response.get('UnprocessedKeys') or None
        return items

    def batch_put(self, name, items):
        """
        One BatchWriteItem call. Returns the items DynamoDB reported as
        unprocessed; the caller decides how to retry them.
        """
        if len(items) > BATCH_SIZE:
            raise ValueError(f'batch_put accepts at most {BATCH_SIZE} items')
        if not items:
            return []
        table_name = self.table_names[name]
        response = self.dynamodb.batch_write_item(RequestItems={
            table_name: [{'PutRequest': {'Item': item}} for item in items]
        })
        unprocessed = response.get('UnprocessedItems', {}).get(table_name, [])
        return [request['PutRequest']['Item'] for request in unprocessed if 'PutRequest' in request]

    def add_to_attribute(self, name, key, attribute, amount):
        """Atomic ADD on a numeric attribute; returns the whole updated item."""
        response = self.table(name).update_item(
            Key=key,
            UpdateExpression='ADD #attr :amount',
            ExpressionAttributeNames={'#attr': attribute},
            ExpressionAttributeValues={':amount': amount},
            ReturnValues='ALL_NEW',
        )
        return response.get('Attributes', {})

    def scan(self, name):
        table = self.table(name)
        response = table.scan()
        items = response.get('Items', [])
        while 'LastEvaluatedKey' in response:
            response = table.scan(ExclusiveStartKey=response['LastEvaluatedKey'])
            items.extend(response.get('Items', []))
        return items


# ------------------------------
# Table definitions (local tooling)
# ------------------------------

def _index(name, attribute):
    return {
        'IndexName': name,
        'KeySchema': [{'AttributeName': attribute, 'KeyType': 'HASH'}],
        'Projection': {'ProjectionType': 'ALL'},
    }


TABLE_DEFINITIONS = {
    'students': {
        'attributes': ['student_id', 'teacher_id'],
        'indexes': [_index('teacher-index', 'teacher_id')],
    },
    'teachers': {
        'attributes': ['teacher_id'],
        'indexes': [],
    },
    'games': {
        'attributes': ['game_id', 'teacher_id', 'student_id'],
        'indexes': [_index('teacher-index', 'teacher_id'), _index('student-index', 'student_id')],
    },
}


def table_exists(client, table_name):
    try:
        client.describe_table(TableName=table_name)
        return True
    except ClientError as e:
        if e.response['Error']['Code'] == 'ResourceNotFoundException':
            return False
        raise


def create_tables(store, reset=False):
    """Create the three tables with their secondary indexes. Returns the names created."""
    client = store.dynamodb.meta.client
    created = []
    for name, definition in TABLE_DEFINITIONS.items():
        table_name = store.table_names[name]
        if table_exists(client, table_name):
            if not reset:
                logger.info('Table %s already exists, skipping', table_name)
                continue
            logger.info('Deleting existing table %s', table_name)
            client.delete_table(TableName=table_name)
            client.get_waiter('table_not_exists').wait(TableName=table_name)

        kwargs = {
            'TableName': table_name,
            'KeySchema': [{'AttributeName': KEY_FIELDS[name], 'KeyType': 'HASH'}],
            'AttributeDefinitions': [
                {'AttributeName': attribute, 'AttributeType': 'S'}
                for attribute in definition['attributes']
            ],
            'BillingMode': 'PAY_PER_REQUEST',
        }
        if definition['indexes']:
            kwargs['GlobalSecondaryIndexes'] = definition['indexes']
        client.create_table(**kwargs)
        client.get_waiter('table_exists').wait(TableName=table_name)
        logger.info('Created table %s', table_name)
        created.append(table_name)
    return created
