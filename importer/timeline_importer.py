"""Importer for timeline JSON documents, local or remote."""
import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

import requests

from processor.event_processor import EventProcessor
from processor.models import Timeline

logger = logging.getLogger(__name__)


class TimelineImportError(ValueError):
    """Raised when an imported document fails structural validation."""


class TimelineImporter:
    """Validates timeline documents and turns them into Timeline objects."""

    MAX_RETRIES = 3
    BASE_DELAY = 1  # seconds

    def __init__(self, timeout: int = 30, processor: Optional[EventProcessor] = None):
        """
        Initialize the timeline importer.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
            processor: Event processor (default: EventProcessor())
        """
        self.timeout = timeout
        self.processor = processor or EventProcessor()

    def fetch_timeline(self, url: str) -> Timeline:
        """
        Fetch a timeline document over HTTP and import it.

        Args:
            url: Location of the timeline JSON document

        Returns:
            Imported Timeline

        Raises:
            requests.RequestException: If all retry attempts fail
            TimelineImportError: If the document is malformed
        """
        logger.info(f"Fetching timeline from {url}")
        document = self._fetch_document(url)
        return self.import_timeline(document)

    def _fetch_document(self, url: str) -> str:
        """
        Fetch a document with retry logic.

        Args:
            url: Document URL

        Returns:
            Response body as text

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        for attempt in range(self.MAX_RETRIES):
            try:
                logger.info(f"Fetching timeline document (attempt {attempt + 1}/{self.MAX_RETRIES})")
                response = requests.get(url, timeout=self.timeout)
                response.raise_for_status()
                return response.text

            except requests.RequestException as e:
                if attempt < self.MAX_RETRIES - 1:
                    # Exponential backoff
                    delay = self.BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.MAX_RETRIES}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.MAX_RETRIES} retry attempts failed. Last error: {e}"
                    )
                    raise

    def import_timeline(self, document: Union[str, Dict[str, Any]]) -> Timeline:
        """
        Validate a timeline document and build a Timeline.

        Every event must carry a title, a goal, at least one entity and a
        deadline that parses; one bad event rejects the whole import.

        Args:
            document: JSON text or an already-decoded dict

        Returns:
            Timeline with normalized events

        Raises:
            TimelineImportError: If the document is malformed
        """
        if isinstance(document, str):
            try:
                document = json.loads(document)
            except json.JSONDecodeError as e:
                raise TimelineImportError(f"Invalid JSON: {e}") from e

        if not isinstance(document, dict):
            raise TimelineImportError("Invalid timeline format: expected an object")

        name = document.get('name')
        raw_events = document.get('events')
        if not name or not isinstance(raw_events, list):
            raise TimelineImportError("Invalid timeline format: 'name' and 'events' are required")

        events = []
        for index, raw_event in enumerate(raw_events):
            if not isinstance(raw_event, dict):
                raise TimelineImportError(f"Invalid event format at index {index}")

            missing = self.processor.missing_required_field(raw_event)
            if missing:
                raise TimelineImportError(
                    f"Invalid event format at index {index}: missing '{missing}'"
                )

            event = self.processor.create_event(raw_event)
            if event is None:
                raise TimelineImportError(
                    f"Invalid event format at index {index}: "
                    f"unparseable deadline {raw_event.get('deadlineText')!r}"
                )
            events.append(event)

        created_at = datetime.now(timezone.utc).isoformat()
        timeline = Timeline(
            id=uuid.uuid4().hex,
            name=str(name),
            events=events,
            created_at=created_at
        )

        logger.info(f"Imported timeline '{timeline.name}' with {len(events)} events")
        return timeline
