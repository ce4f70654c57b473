"""DynamoDB store for user-created events."""
import logging
import time
import uuid
from dataclasses import fields
from typing import Callable, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.config import Config
from botocore.exceptions import ClientError

from discovery.models import UserCreatedEvent
from storage.image_store import S3ImageStore
from storage.item_codec import from_item, to_item

logger = logging.getLogger(__name__)

Snapshot = Dict[str, dict]

IMMUTABLE_FIELDS = ('event_id', 'owner_id', 'created_at')
EVENT_FIELDS = {f.name for f in fields(UserCreatedEvent)}


class DynamoDBEventStore:
    """Local event store backed by a DynamoDB table keyed on event_id."""

    BATCH_SIZE = 25  # DynamoDB batch operation limit

    def __init__(
        self,
        table_name: str,
        image_store: Optional[S3ImageStore] = None,
        timeout: float = 10
    ):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table
            image_store: Store used to delete event images, if any
            timeout: Connect and read timeout in seconds
        """
        self.table_name = table_name
        self.image_store = image_store
        config = Config(
            connect_timeout=timeout,
            read_timeout=timeout,
            retries={'max_attempts': 2}
        )
        self.dynamodb = boto3.resource('dynamodb', config=config)
        self.table = self.dynamodb.Table(table_name)
        self._listeners: List[Callable[[Snapshot], None]] = []
        logger.info(f"Initialized DynamoDBEventStore for table: {table_name}")

    def get_all_events(self) -> Snapshot:
        """
        Retrieve all events from DynamoDB using Scan operation.

        Returns:
            Dictionary mapping event_id to the event's attributes
        """
        logger.info("Scanning DynamoDB table for all events")

        try:
            items = self._scan()
        except ClientError as e:
            logger.error(f"Error scanning DynamoDB table: {e}")
            raise

        events = {}
        for item in items:
            attributes = from_item(item)
            event_id = attributes.pop('event_id', None)
            if event_id:
                events[event_id] = attributes

        logger.info(f"Retrieved {len(events)} events from DynamoDB")
        return events

    def get_event(self, event_id: str) -> Optional[UserCreatedEvent]:
        """
        Retrieve one event.

        Args:
            event_id: Event identifier

        Returns:
            UserCreatedEvent, or None if it does not exist
        """
        try:
            response = self.table.get_item(Key={'event_id': event_id})
        except ClientError as e:
            logger.error(f"Error reading event {event_id}: {e}")
            raise

        item = response.get('Item')
        return self._item_to_event(item) if item else None

    def get_user_events(self, owner_id: str) -> List[UserCreatedEvent]:
        """
        Retrieve the events created by one user, newest first.

        Args:
            owner_id: Opaque user identifier

        Returns:
            List of UserCreatedEvent objects
        """
        try:
            items = self._scan(FilterExpression=Attr('owner_id').eq(owner_id))
        except ClientError as e:
            logger.error(f"Error scanning events for owner {owner_id}: {e}")
            raise

        events = [
            event for event in (self._item_to_event(item) for item in items)
            if event
        ]
        events.sort(key=lambda event: event.created_at, reverse=True)
        return events

    def create_event(self, owner_id: str, attributes: dict) -> str:
        """
        Create an event owned by owner_id.

        Args:
            owner_id: Opaque user identifier
            attributes: Event fields (title is required)

        Returns:
            Generated event_id

        Raises:
            ValueError: If the title is missing
        """
        title = (attributes.get('title') or '').strip()
        if not title:
            raise ValueError("Event title is required")

        event_id = str(uuid.uuid4())
        values = self._known_fields(attributes)
        values.update({
            'event_id': event_id,
            'owner_id': owner_id,
            'title': title,
            'created_at': int(time.time()),
        })

        try:
            self.table.put_item(Item=to_item(values))
        except ClientError as e:
            logger.error(f"Error creating event for owner {owner_id}: {e}")
            raise

        logger.info(f"Created event {event_id} for owner {owner_id}")
        self._notify()
        return event_id

    def update_event(self, event_id: str, updates: dict) -> bool:
        """
        Update fields of an existing event and stamp updated_at.

        event_id, owner_id and created_at cannot be changed.

        Args:
            event_id: Event identifier
            updates: Fields to change

        Returns:
            True if the event existed and was updated, False otherwise

        Raises:
            ValueError: If the update blanks the title
        """
        if 'title' in updates:
            title = (updates.get('title') or '').strip()
            if not title:
                raise ValueError("Event title is required")
            updates = {**updates, 'title': title}

        existing = self.get_event(event_id)
        if existing is None:
            logger.warning(f"Cannot update missing event {event_id}")
            return False

        values = {
            key: value for key, value in self._known_fields(updates).items()
            if key not in IMMUTABLE_FIELDS
        }
        values['updated_at'] = int(time.time())

        item = from_item(self._event_to_item(existing))
        item.update(values)

        try:
            self.table.put_item(Item=to_item(item))
        except ClientError as e:
            logger.error(f"Error updating event {event_id}: {e}")
            raise

        logger.info(f"Updated event {event_id}")
        self._notify()
        return True

    def delete_event(self, event_id: str) -> bool:
        """
        Delete an event together with its stored image.

        Args:
            event_id: Event identifier

        Returns:
            True if the event existed and was deleted, False otherwise
        """
        existing = self.get_event(event_id)
        if existing is None:
            logger.warning(f"Cannot delete missing event {event_id}")
            return False

        try:
            self.table.delete_item(Key={'event_id': event_id})
        except ClientError as e:
            logger.error(f"Error deleting event {event_id}: {e}")
            raise

        if existing.image_url and self.image_store:
            self.image_store.delete_image(existing.image_url)

        logger.info(f"Deleted event {event_id}")
        self._notify()
        return True

    def batch_write_events(self, events: List[UserCreatedEvent]) -> int:
        """
        Write events to DynamoDB in batches of 25 items.

        Args:
            events: List of UserCreatedEvent objects to write

        Returns:
            Count of successfully written events
        """
        if not events:
            return 0

        logger.info(f"Writing {len(events)} events to DynamoDB")
        success_count = 0

        # Process in batches of 25 (DynamoDB limit)
        for i in range(0, len(events), self.BATCH_SIZE):
            batch = events[i:i + self.BATCH_SIZE]

            try:
                with self.table.batch_writer() as writer:
                    for event in batch:
                        writer.put_item(Item=self._event_to_item(event))
                success_count += len(batch)

            except ClientError as e:
                logger.error(
                    f"Error writing batch {i // self.BATCH_SIZE + 1}: {e}"
                )
                # Continue processing remaining batches
                continue

        logger.info(f"Successfully wrote {success_count} events")
        self._notify()
        return success_count

    def subscribe(self, callback: Callable[[Snapshot], None]) -> Callable[[], None]:
        """
        Register a callback receiving the full snapshot after each change.

        Args:
            callback: Called with the get_all_events() mapping

        Returns:
            Function that removes the callback
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return

        snapshot = self.get_all_events()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Event store listener failed")

    def _scan(self, **kwargs) -> List[dict]:
        # Handle pagination
        response = self.table.scan(**kwargs)
        items = response.get('Items', [])
        while 'LastEvaluatedKey' in response:
            response = self.table.scan(
                ExclusiveStartKey=response['LastEvaluatedKey'],
                **kwargs
            )
            items.extend(response.get('Items', []))
        return items

    def _known_fields(self, attributes: dict) -> dict:
        unknown = set(attributes) - EVENT_FIELDS
        if unknown:
            logger.warning(f"Ignoring unknown event fields: {sorted(unknown)}")
        return {k: v for k, v in attributes.items() if k in EVENT_FIELDS}

    def _item_to_event(self, item: dict) -> Optional[UserCreatedEvent]:
        """
        Convert DynamoDB item to UserCreatedEvent object.

        Args:
            item: DynamoDB item dictionary

        Returns:
            UserCreatedEvent object or None if conversion fails
        """
        values = from_item(item)
        try:
            return UserCreatedEvent(
                **{k: v for k, v in values.items() if k in EVENT_FIELDS}
            )
        except TypeError as e:
            logger.warning(f"Failed to convert item to UserCreatedEvent: {e}")
            return None

    def _event_to_item(self, event: UserCreatedEvent) -> dict:
        return to_item({f: getattr(event, f) for f in EVENT_FIELDS})
