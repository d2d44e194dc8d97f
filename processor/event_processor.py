"""Event processor for validating and normalizing timeline events."""
import hashlib
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from dates.expression_parser import DateExpressionParser
from processor.models import Event

logger = logging.getLogger(__name__)


class EventProcessor:
    """Builds normalized Event objects from raw event data."""

    MAX_TITLE_LENGTH = 200
    MAX_DESCRIPTION_LENGTH = 2000

    def __init__(self, parser: Optional[DateExpressionParser] = None):
        """
        Initialize the event processor.

        Args:
            parser: Deadline parser (default: DateExpressionParser())
        """
        self.parser = parser or DateExpressionParser()

    def process_events(self, raw_events: List[Dict[str, Any]]) -> List[Event]:
        """
        Process and validate raw event data, skipping invalid events.

        Args:
            raw_events: List of raw event dicts (form or import payloads)

        Returns:
            List of valid Event objects
        """
        processed_events = []

        for raw_event in raw_events:
            event = self.create_event(raw_event)
            if event:
                processed_events.append(event)

        logger.info(
            f"Processed {len(processed_events)} valid events out of "
            f"{len(raw_events)} total events"
        )
        return processed_events

    def create_event(self, raw_event: Dict[str, Any]) -> Optional[Event]:
        """
        Create an Event from raw data.

        Groups are normalized here once; the temporal value is always
        derived from the deadline text, never from cached date fields.

        Args:
            raw_event: Raw event dict with camelCase keys

        Returns:
            Event object or None if validation fails
        """
        missing = self.missing_required_field(raw_event)
        if missing:
            logger.warning(
                f"Event '{raw_event.get('title', '')}' missing required field: {missing}"
            )
            return None

        deadline_text = str(raw_event['deadlineText']).strip()
        temporal = self.parser.parse(deadline_text)
        if temporal is None:
            logger.warning(
                f"Unparseable deadline for event '{raw_event['title']}': {deadline_text}"
            )
            return None

        title = str(raw_event['title']).strip()[:self.MAX_TITLE_LENGTH]
        description = str(raw_event.get('description') or '')[:self.MAX_DESCRIPTION_LENGTH]
        created_at = raw_event.get('createdAt') or datetime.now(timezone.utc).isoformat()

        event_id = raw_event.get('id') or self.generate_event_id(
            title=title,
            deadline_text=deadline_text,
            created_at=created_at
        )

        return Event(
            id=str(event_id),
            title=title,
            goal=str(raw_event['goal']).strip(),
            deadline_text=deadline_text,
            primary_groups=self.primary_groups_of(raw_event),
            secondary_groups=self.normalize_groups(raw_event.get('secondaryEntities')),
            description=description,
            temporal=temporal,
            created_at=created_at
        )

    def update_event(self, event: Event, updates: Dict[str, Any]) -> Optional[Event]:
        """
        Apply an edit to an event.

        The temporal value is re-derived whenever the deadline text changes;
        an edit whose new deadline cannot be parsed is rejected.

        Args:
            event: Existing event
            updates: Changed fields (camelCase keys, as in create_event)

        Returns:
            Updated Event, or None if the edit is rejected
        """
        changes: Dict[str, Any] = {}

        if 'title' in updates:
            title = str(updates['title'] or '').strip()
            if not title:
                logger.warning(f"Rejected edit of '{event.title}': empty title")
                return None
            changes['title'] = title[:self.MAX_TITLE_LENGTH]

        if 'description' in updates:
            changes['description'] = str(updates['description'] or '')[:self.MAX_DESCRIPTION_LENGTH]

        if 'goal' in updates:
            goal = str(updates['goal'] or '').strip()
            if not goal:
                logger.warning(f"Rejected edit of '{event.title}': empty goal")
                return None
            changes['goal'] = goal

        if 'entities' in updates or 'entity' in updates:
            primary_groups = self.primary_groups_of(updates)
            if not primary_groups:
                logger.warning(f"Rejected edit of '{event.title}': no entities")
                return None
            changes['primary_groups'] = primary_groups

        if 'secondaryEntities' in updates:
            changes['secondary_groups'] = self.normalize_groups(updates['secondaryEntities'])

        if 'deadlineText' in updates:
            deadline_text = str(updates['deadlineText'] or '').strip()
            if deadline_text != event.deadline_text or event.temporal is None:
                temporal = self.parser.parse(deadline_text)
                if temporal is None:
                    logger.warning(
                        f"Rejected edit of '{event.title}': unparseable deadline {deadline_text!r}"
                    )
                    return None
                changes['deadline_text'] = deadline_text
                changes['temporal'] = temporal

        return replace(event, **changes)

    def missing_required_field(self, raw_event: Dict[str, Any]) -> Optional[str]:
        """
        Find the first missing required field of a raw event.

        Args:
            raw_event: Raw event dict

        Returns:
            Name of the missing field, or None if all are present
        """
        for field_name in ('title', 'goal', 'deadlineText'):
            value = raw_event.get(field_name)
            if not value or not str(value).strip():
                return field_name

        if not self.primary_groups_of(raw_event):
            return 'entities'

        return None

    def primary_groups_of(self, raw_event: Dict[str, Any]) -> Tuple[str, ...]:
        """Primary groups from `entities`, falling back to legacy `entity`."""
        return self.normalize_groups(raw_event.get('entities') or raw_event.get('entity'))

    def normalize_groups(self, value: Any) -> Tuple[str, ...]:
        """
        Normalize group membership into an ordered, de-duplicated tuple.

        Accepts a comma-separated string, a list/tuple of strings, or None.

        Args:
            value: Raw group value

        Returns:
            Tuple of non-empty group keys in first-seen order
        """
        if value is None:
            return ()
        if isinstance(value, str):
            items = value.split(',')
        elif isinstance(value, (list, tuple)):
            items = value
        else:
            items = [value]

        cleaned = (str(item).strip() for item in items if item is not None)
        return tuple(dict.fromkeys(item for item in cleaned if item))

    def unique_entities(self, events: Iterable[Event]) -> List[str]:
        """Sorted primary entities across events."""
        entities = set()
        for event in events:
            entities.update(event.primary_groups)
        return sorted(entities)

    def unique_goals(self, events: Iterable[Event]) -> List[str]:
        """Sorted goals across events."""
        return sorted({event.goal for event in events if event.goal})

    def generate_event_id(self, title: str, deadline_text: str, created_at: str) -> str:
        """
        Generate an identifier for an event using a hash of its content.

        Args:
            title: Event title
            deadline_text: Deadline text as entered
            created_at: Creation timestamp (ISO 8601)

        Returns:
            Event ID (SHA256 hash)
        """
        composite = f"{title}|{deadline_text}|{created_at}"

        hash_obj = hashlib.sha256(composite.encode('utf-8'))
        return hash_obj.hexdigest()
