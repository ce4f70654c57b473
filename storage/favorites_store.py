"""DynamoDB store for users' favorite events."""
import logging
import time
from dataclasses import fields
from typing import List

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from discovery.models import EventRecord, FavoriteRecord
from storage.item_codec import from_item, to_item

logger = logging.getLogger(__name__)

FAVORITE_FIELDS = {f.name for f in fields(FavoriteRecord)}


class FavoritesStore:
    """Favorites table keyed on (user_id, event_id)."""

    def __init__(self, table_name: str):
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized FavoritesStore for table: {table_name}")

    def add_favorite(self, user_id: str, event: EventRecord) -> FavoriteRecord:
        """
        Save a snapshot of event as a favorite of user_id.

        Favoriting the same event again replaces the earlier snapshot.

        Args:
            user_id: Opaque user identifier
            event: Event as currently displayed

        Returns:
            The stored FavoriteRecord
        """
        favorite = FavoriteRecord(
            user_id=user_id,
            event_id=event.id,
            title=event.title,
            start_date=event.start_date,
            favorited_at=int(time.time()),
            image_url=event.image_url,
            latitude=event.latitude,
            longitude=event.longitude,
            venue_name=event.venue_name,
            address=event.address,
            city=event.city,
            region=event.region,
            source_url=event.source_url,
            category=event.category,
            source=event.source
        )

        try:
            self.table.put_item(
                Item=to_item({f: getattr(favorite, f) for f in FAVORITE_FIELDS})
            )
        except ClientError as e:
            logger.error(f"Error saving favorite {event.id} for user {user_id}: {e}")
            raise

        logger.info(f"User {user_id} favorited event {event.id}")
        return favorite

    def remove_favorite(self, user_id: str, event_id: str) -> bool:
        """Remove one favorite. Returns False if it did not exist."""
        try:
            response = self.table.delete_item(
                Key={'user_id': user_id, 'event_id': event_id},
                ReturnValues='ALL_OLD'
            )
        except ClientError as e:
            logger.error(f"Error removing favorite {event_id} for user {user_id}: {e}")
            raise

        removed = 'Attributes' in response
        if removed:
            logger.info(f"User {user_id} removed favorite {event_id}")
        return removed

    def is_favorite(self, user_id: str, event_id: str) -> bool:
        response = self.table.get_item(Key={'user_id': user_id, 'event_id': event_id})
        return 'Item' in response

    def list_favorites(self, user_id: str) -> List[FavoriteRecord]:
        """
        List a user's favorites, most recently favorited first.

        Args:
            user_id: Opaque user identifier

        Returns:
            List of FavoriteRecord objects
        """
        try:
            items = self._query_user(user_id)
        except ClientError as e:
            logger.error(f"Error listing favorites for user {user_id}: {e}")
            raise

        favorites = []
        for item in items:
            values = from_item(item)
            try:
                favorites.append(FavoriteRecord(
                    **{k: v for k, v in values.items() if k in FAVORITE_FIELDS}
                ))
            except TypeError as e:
                logger.warning(f"Failed to convert item to FavoriteRecord: {e}")

        favorites.sort(key=lambda favorite: favorite.favorited_at, reverse=True)
        return favorites

    def delete_user_favorites(self, user_id: str) -> int:
        """
        Delete every favorite of a user, as on account deletion.

        Args:
            user_id: Opaque user identifier

        Returns:
            Count of deleted favorites
        """
        items = self._query_user(user_id)
        if not items:
            return 0

        with self.table.batch_writer() as writer:
            for item in items:
                writer.delete_item(
                    Key={'user_id': user_id, 'event_id': item['event_id']}
                )

        logger.info(f"Deleted {len(items)} favorites for user {user_id}")
        return len(items)

    def _query_user(self, user_id: str) -> List[dict]:
        response = self.table.query(KeyConditionExpression=Key('user_id').eq(user_id))
        items = response.get('Items', [])
        while 'LastEvaluatedKey' in response:
            response = self.table.query(
                KeyConditionExpression=Key('user_id').eq(user_id),
                ExclusiveStartKey=response['LastEvaluatedKey']
            )
            items.extend(response.get('Items', []))
        return items
