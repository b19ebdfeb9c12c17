"""DynamoDB-backed document store for community and saved events."""
import logging
import uuid
from abc import ABC, abstractmethod
from decimal import Decimal
from functools import reduce
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


class DocumentStoreError(Exception):
    """Remote document store operation failed."""


class DocumentStore(ABC):
    """Document store interface consumed by the event services."""

    @abstractmethod
    def query(self, collection: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def insert(self, collection: str, record: Dict[str, Any]) -> str:
        raise NotImplementedError

    @abstractmethod
    def delete(self, collection: str, filters: Dict[str, Any]) -> int:
        raise NotImplementedError

    @abstractmethod
    def is_empty(self, collection: str) -> bool:
        raise NotImplementedError


class DynamoDBDocumentStore(DocumentStore):
    """Document store keeping one DynamoDB table per collection."""

    BATCH_SIZE = 25  # DynamoDB batch operation limit

    def __init__(self, table_prefix: str = "", region_name: Optional[str] = None):
        """
        Initialize the DynamoDB resource.

        Args:
            table_prefix: Prepended to collection names to form table names
            region_name: AWS region (default: boto3 configuration)
        """
        self.table_prefix = table_prefix
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        logger.info(f"Initialized DynamoDBDocumentStore (prefix: '{table_prefix}')")

    def table_name(self, collection: str) -> str:
        return f"{self.table_prefix}{collection}"

    def query(self, collection: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Fetch documents matching equality filters.

        Args:
            collection: Collection name
            filters: Field/value pairs that must all match

        Returns:
            Documents as plain dicts, each including its ``id``

        Raises:
            DocumentStoreError: If the scan fails
        """
        table = self.dynamodb.Table(self.table_name(collection))
        scan_kwargs = {}
        if filters:
            scan_kwargs['FilterExpression'] = reduce(
                lambda left, right: left & right,
                [Attr(name).eq(_to_dynamo(value)) for name, value in filters.items()]
            )

        try:
            response = table.scan(**scan_kwargs)
            items = response.get('Items', [])

            # Handle pagination
            while 'LastEvaluatedKey' in response:
                response = table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey'],
                    **scan_kwargs
                )
                items.extend(response.get('Items', []))
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error scanning {collection}: {e}")
            raise DocumentStoreError(f"Could not load {collection}") from e

        logger.info(f"Retrieved {len(items)} documents from {collection}")
        return [_from_dynamo(item) for item in items]

    def insert(self, collection: str, record: Dict[str, Any]) -> str:
        """
        Store a new document under a generated id.

        Returns:
            The new document id
        """
        doc_id = uuid.uuid4().hex
        item = {key: _to_dynamo(value) for key, value in record.items() if value is not None}
        item['id'] = doc_id

        try:
            self.dynamodb.Table(self.table_name(collection)).put_item(Item=item)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error writing to {collection}: {e}")
            raise DocumentStoreError(f"Could not save to {collection}") from e

        logger.info(f"Inserted document {doc_id} into {collection}")
        return doc_id

    def delete(self, collection: str, filters: Dict[str, Any]) -> int:
        """
        Delete every document matching the filters, in batches of 25.

        Returns:
            Count of deleted documents
        """
        if not filters:
            raise ValueError("Refusing to delete without filters")

        doc_ids = [doc['id'] for doc in self.query(collection, filters)]
        if not doc_ids:
            return 0

        table = self.dynamodb.Table(self.table_name(collection))
        deleted = 0
        for i in range(0, len(doc_ids), self.BATCH_SIZE):
            batch = doc_ids[i:i + self.BATCH_SIZE]
            try:
                with table.batch_writer() as writer:
                    for doc_id in batch:
                        writer.delete_item(Key={'id': doc_id})
                        deleted += 1
            except (ClientError, BotoCoreError) as e:
                logger.error(f"Error deleting batch {i // self.BATCH_SIZE + 1} from {collection}: {e}")
                raise DocumentStoreError(f"Could not delete from {collection}") from e

        logger.info(f"Deleted {deleted} documents from {collection}")
        return deleted

    def is_empty(self, collection: str) -> bool:
        try:
            response = self.dynamodb.Table(self.table_name(collection)).scan(Limit=1)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error checking {collection}: {e}")
            raise DocumentStoreError(f"Could not load {collection}") from e
        return not response.get('Items')


def _to_dynamo(value: Any) -> Any:
    """DynamoDB rejects floats; store them as Decimal."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, list):
        return [_to_dynamo(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_dynamo(v) for k, v in value.items()}
    return value


def _from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, list):
        return [_from_dynamo(v) for v in value]
    if isinstance(value, dict):
        return {k: _from_dynamo(v) for k, v in value.items()}
    return value
