"""Unit tests for the serializer helpers."""
import json
from datetime import date

import pytest

from processor.models import (
    AxisTick,
    Event,
    LayoutPlacement,
    Side,
    TemporalValue,
    Timeline,
    ViewportState,
)
from processor.serializer import (
    event_to_item,
    export_timeline,
    placement_to_dict,
    temporal_to_dict,
    tick_to_dict,
    viewport_from_dict,
    viewport_to_dict,
)


@pytest.fixture
def event():
    return Event(
        id='evt-1',
        title='Scale out',
        goal='Growth',
        deadline_text='April-June 2026',
        primary_groups=('Team B',),
        secondary_groups=('Team A',),
        temporal=TemporalValue(start_date=date(2026, 4, 1), end_date=date(2026, 6, 28)),
        created_at='2026-01-01T00:00:00+00:00'
    )


class TestSerializer:
    """Test cases for model conversion."""

    def test_temporal_to_dict(self):
        """Test temporal values use ISO dates."""
        value = TemporalValue(start_date=date(2026, 2, 1))

        assert temporal_to_dict(value) == {
            'startDate': '2026-02-01',
            'endDate': None,
            'isOngoing': False
        }
        assert temporal_to_dict(None) is None

    def test_event_to_item(self, event):
        """Test events export with camelCase keys and cached dates."""
        item = event_to_item(event)

        assert item['entities'] == ['Team B']
        assert item['secondaryEntities'] == ['Team A']
        assert item['deadlineText'] == 'April-June 2026'
        assert item['startDate'] == '2026-04-01'
        assert item['endDate'] == '2026-06-28'
        assert item['computedDate'] == '2026-04-01'

    def test_export_timeline(self, event):
        """Test exports are indented JSON documents."""
        exported = export_timeline(Timeline(id='t1', name='Roadmap', events=[event]))

        assert exported.startswith('{\n  ')
        assert json.loads(exported)['events'][0]['id'] == 'evt-1'

    def test_viewport_round_trip(self):
        """Test viewport state survives a payload round trip."""
        viewport = ViewportState(zoom=2.0, pan_x=-120.5, pan_y=-30, width=1000, height=700)
        assert viewport_from_dict(viewport_to_dict(viewport)) == viewport

    def test_viewport_defaults(self):
        """Test missing viewport fields fall back to defaults."""
        viewport = viewport_from_dict(None, default_width=1400, default_height=900)
        assert viewport == ViewportState(width=1400, height=900)

    @pytest.mark.parametrize("zoom, expected", [(0, 0.1), (-4, 0.1), (50, 10.0), (2.5, 2.5)])
    def test_viewport_zoom_is_clamped(self, zoom, expected):
        """Test out-of-range zoom is clamped rather than rejected."""
        assert viewport_from_dict({'zoom': zoom}).zoom == expected

    def test_viewport_rejects_non_numeric(self):
        """Test non-numeric fields are rejected."""
        with pytest.raises(ValueError):
            viewport_from_dict({'zoom': 'wide'})

    def test_placement_to_dict(self, event):
        """Test placements carry display text and geometry."""
        placement = LayoutPlacement(
            event=event, x=120.0, x2=180.0, level=1, side=Side.BELOW,
            label_offset=20, baseline_y=260, row='Team A', is_primary=False
        )

        data = placement_to_dict(placement)

        assert data['eventId'] == 'evt-1'
        assert data['dateText'] == 'April 1, 2026 – June 28, 2026'
        assert data['side'] == 'below'
        assert data['isPrimary'] is False
        assert data['isOngoing'] is False

    def test_tick_to_dict(self):
        """Test ticks expose position and label."""
        tick = AxisTick(day=1.0, x=100.0, label='Jan 2026', span_start=70.0, span_end=130.0)
        assert tick_to_dict(tick) == {'x': 100.0, 'label': 'Jan 2026'}
