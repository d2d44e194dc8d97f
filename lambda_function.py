"""AWS Lambda handler for the milestone timeline layout service."""
import json
import logging
import os
import time
from datetime import date
from typing import Dict, Any

import requests

from dates.expression_parser import DateExpressionParser, format_range, parse
from importer.timeline_importer import TimelineImporter, TimelineImportError
from layout.orchestrator import Frame, LayoutOrchestrator
from processor.event_processor import EventProcessor
from processor.models import LayoutFilters, ViewMode
from processor.serializer import (
    placement_to_dict,
    temporal_to_dict,
    tick_to_dict,
    timeline_to_dict,
    viewport_from_dict,
    viewport_to_dict,
)


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def load_config() -> Dict[str, Any]:
    """Read configuration from environment variables."""
    return {
        'log_level': os.environ.get('LOG_LEVEL', 'INFO'),
        'viewport_width': float(os.environ.get('VIEWPORT_WIDTH', '1200')),
        'viewport_height': float(os.environ.get('VIEWPORT_HEIGHT', '800')),
        'timeout_seconds': int(os.environ.get('TIMEOUT_SECONDS', '30')),
        'sample_timeline_url': os.environ.get('SAMPLE_TIMELINE_URL', '')
    }


def _response(status_code: int, body: Dict[str, Any], start_time: float) -> Dict[str, Any]:
    body['duration_seconds'] = round(time.time() - start_time, 2)
    return {
        'statusCode': status_code,
        'body': json.dumps(body)
    }


def _frame_to_body(frame: Frame) -> Dict[str, Any]:
    return {
        'mode': frame.mode.value,
        'viewport': viewport_to_dict(frame.viewport),
        'placements': [placement_to_dict(p) for p in frame.placements],
        'ticks': [tick_to_dict(t) for t in frame.ticks],
        'rows': frame.rows,
        'todayX': frame.today_x
    }


def _build_orchestrator(event: Dict[str, Any], config: Dict[str, Any]) -> LayoutOrchestrator:
    """
    Build an orchestrator holding the view state carried by a request.

    Raises:
        TimelineImportError: If the timeline payload is malformed
        ValueError: If viewport, mode or today are invalid
    """
    today = date.fromisoformat(event['today']) if event.get('today') else date.today()
    viewport = viewport_from_dict(
        event.get('viewport'),
        default_width=config['viewport_width'],
        default_height=config['viewport_height']
    )

    importer = TimelineImporter(
        timeout=config['timeout_seconds'],
        processor=EventProcessor(DateExpressionParser(clock=lambda: today))
    )
    timeline = importer.import_timeline(event.get('timeline') or {})

    filters = event.get('filters') or {}
    orchestrator = LayoutOrchestrator(viewport=viewport, clock=lambda: today)
    orchestrator.mode = ViewMode(event.get('mode', ViewMode.UNIFIED.value))
    orchestrator.filters = LayoutFilters(
        search=filters.get('search', ''),
        entity=filters.get('entity', ''),
        goal=filters.get('goal', '')
    )
    orchestrator.events = list(timeline.events)
    orchestrator.clamp_viewport()
    return orchestrator


def _handle_parse(event: Dict[str, Any]) -> tuple:
    text = event.get('text')
    today = date.fromisoformat(event['today']) if event.get('today') else None
    temporal = parse(text, today=today)
    if temporal is None:
        return 422, {'message': 'Unable to parse deadline', 'text': text}
    return 200, {
        'message': 'Deadline parsed',
        'temporal': temporal_to_dict(temporal),
        'readable': format_range(temporal)
    }


def _handle_layout(event: Dict[str, Any], config: Dict[str, Any]) -> tuple:
    frame = _build_orchestrator(event, config).render()
    return 200, {'message': 'Layout computed', **_frame_to_body(frame)}


def _handle_zoom(event: Dict[str, Any], config: Dict[str, Any]) -> tuple:
    orchestrator = _build_orchestrator(event, config)
    direction = event.get('direction')
    if direction == 'in':
        frame = orchestrator.zoom_in()
    elif direction == 'out':
        frame = orchestrator.zoom_out()
    elif direction == 'reset':
        frame = orchestrator.reset_zoom()
    elif 'zoom' in event:
        frame = orchestrator.set_zoom(float(event['zoom']))
    else:
        raise ValueError("zoom request needs 'zoom' or 'direction'")
    return 200, {'message': 'Zoom applied', **_frame_to_body(frame)}


def _handle_pan(event: Dict[str, Any], config: Dict[str, Any]) -> tuple:
    orchestrator = _build_orchestrator(event, config)
    frame = orchestrator.pan(float(event.get('dx', 0)), float(event.get('dy', 0)))
    return 200, {'message': 'Pan applied', **_frame_to_body(frame)}


def _handle_import(event: Dict[str, Any], config: Dict[str, Any]) -> tuple:
    importer = TimelineImporter(timeout=config['timeout_seconds'])
    if event.get('timeline'):
        timeline = importer.import_timeline(event['timeline'])
    else:
        url = event.get('url') or config['sample_timeline_url']
        if not url:
            raise ValueError("import request needs 'timeline' or 'url'")
        timeline = importer.fetch_timeline(url)

    return 200, {
        'message': 'Timeline imported successfully',
        'timeline': timeline_to_dict(timeline)
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for the timeline layout service.

    Args:
        event: Request payload with an 'action' key
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    config = load_config()

    setup_logging(config['log_level'])
    logger = logging.getLogger(__name__)

    start_time = time.time()
    action = (event or {}).get('action', '')
    logger.info(f"Handling '{action}' request")

    try:
        if action == 'parse':
            status_code, body = _handle_parse(event)
        elif action == 'layout':
            status_code, body = _handle_layout(event, config)
        elif action == 'zoom':
            status_code, body = _handle_zoom(event, config)
        elif action == 'pan':
            status_code, body = _handle_pan(event, config)
        elif action == 'import':
            status_code, body = _handle_import(event, config)
        else:
            logger.warning(f"Unknown action: {action!r}")
            return _response(400, {
                'message': 'Unknown action',
                'action': action
            }, start_time)

        logger.info(
            f"Request '{action}' completed",
            extra={'status_code': status_code}
        )
        return _response(status_code, body, start_time)

    except TimelineImportError as e:
        logger.warning(f"Rejected timeline import: {e}")
        return _response(400, {
            'message': 'Invalid timeline',
            'error': str(e),
            'error_type': type(e).__name__
        }, start_time)

    except requests.RequestException as e:
        logger.error(
            f"Failed to fetch timeline after retries: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _response(502, {
            'message': 'Failed to fetch timeline',
            'error': str(e),
            'error_type': type(e).__name__
        }, start_time)

    except (ValueError, TypeError, KeyError) as e:
        logger.warning(f"Bad request for '{action}': {e}")
        return _response(400, {
            'message': 'Bad request',
            'error': str(e),
            'error_type': type(e).__name__
        }, start_time)

    except Exception as e:
        logger.error(
            f"Request '{action}' failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _response(500, {
            'message': 'Request failed',
            'error': str(e),
            'error_type': type(e).__name__
        }, start_time)
