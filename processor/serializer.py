"""Conversion between models and JSON-ready dicts."""
import json
from typing import Any, Dict, Optional

from dates.expression_parser import format_range
from processor.models import (
    AxisTick,
    Event,
    LayoutPlacement,
    TemporalValue,
    Timeline,
    ViewportState,
)
from viewport.controller import ViewportController


def temporal_to_dict(temporal: Optional[TemporalValue]) -> Optional[Dict[str, Any]]:
    """
    Convert a TemporalValue to its wire form.

    Args:
        temporal: Parsed temporal value

    Returns:
        Dict with ISO dates, or None
    """
    if temporal is None:
        return None
    return {
        'startDate': temporal.start_date.isoformat(),
        'endDate': temporal.end_date.isoformat() if temporal.end_date else None,
        'isOngoing': temporal.is_ongoing
    }


def event_to_item(event: Event) -> Dict[str, Any]:
    """
    Convert an Event to an export item.

    Cached temporal fields are written alongside the deadline text; on
    import they are re-derived from the text.

    Args:
        event: Event object

    Returns:
        Item dictionary with camelCase keys
    """
    item = {
        'id': event.id,
        'title': event.title,
        'description': event.description,
        'goal': event.goal,
        'entities': list(event.primary_groups),
        'secondaryEntities': list(event.secondary_groups),
        'deadlineText': event.deadline_text,
        'startDate': None,
        'endDate': None,
        'isOngoing': False,
        'computedDate': None,
        'createdAt': event.created_at
    }

    if event.temporal:
        item.update(temporal_to_dict(event.temporal))
        item['computedDate'] = event.temporal.computed_date.isoformat()

    return item


def timeline_to_dict(timeline: Timeline) -> Dict[str, Any]:
    return {
        'id': timeline.id,
        'name': timeline.name,
        'events': [event_to_item(event) for event in timeline.events],
        'createdAt': timeline.created_at
    }


def export_timeline(timeline: Timeline) -> str:
    """Export a timeline as an indented JSON document."""
    return json.dumps(timeline_to_dict(timeline), indent=2)


def viewport_to_dict(viewport: ViewportState) -> Dict[str, float]:
    return {
        'zoom': viewport.zoom,
        'panX': viewport.pan_x,
        'panY': viewport.pan_y,
        'width': viewport.width,
        'height': viewport.height
    }


def viewport_from_dict(
    data: Optional[Dict[str, Any]],
    default_width: float = 1200.0,
    default_height: float = 800.0
) -> ViewportState:
    """
    Build a ViewportState from a request payload.

    Args:
        data: Dict with optional zoom/panX/panY/width/height
        default_width: Width used when the payload omits it
        default_height: Height used when the payload omits it

    Returns:
        ViewportState

    Out-of-range zoom is clamped to the controller's bounds.

    Raises:
        ValueError: If a field is not numeric
    """
    data = data or {}
    zoom = ViewportController().clamp_zoom(float(data.get('zoom', 1.0)))

    return ViewportState(
        zoom=zoom,
        pan_x=float(data.get('panX', 0.0)),
        pan_y=float(data.get('panY', 0.0)),
        width=float(data.get('width', default_width)),
        height=float(data.get('height', default_height))
    )


def placement_to_dict(placement: LayoutPlacement) -> Dict[str, Any]:
    event = placement.event
    return {
        'eventId': event.id,
        'title': event.title,
        'goal': event.goal,
        'dateText': format_range(event.temporal),
        'x': placement.x,
        'x2': placement.x2,
        'level': placement.level,
        'side': placement.side.value,
        'labelOffset': placement.label_offset,
        'baselineY': placement.baseline_y,
        'row': placement.row,
        'isPrimary': placement.is_primary,
        'isOngoing': bool(event.temporal and event.temporal.is_ongoing)
    }


def tick_to_dict(tick: AxisTick) -> Dict[str, Any]:
    return {
        'x': tick.x,
        'label': tick.label
    }
