"""Glue between view state changes, the layout engine and a rendering sink."""
import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Callable, Iterable, List, Optional, Union

from layout.collision_engine import CollisionLayoutEngine
from processor.models import (
    AxisTick,
    Event,
    LayoutFilters,
    LayoutPlacement,
    TimeWindow,
    ViewMode,
    ViewportState,
)
from viewport.controller import map_time_to_x

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Frame:
    """Everything a rendering sink needs to draw one render cycle."""
    viewport: ViewportState
    mode: ViewMode
    placements: List[LayoutPlacement] = field(default_factory=list)
    ticks: List[AxisTick] = field(default_factory=list)
    rows: List[str] = field(default_factory=list)
    window: Optional[TimeWindow] = None
    today_x: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return not self.placements


RenderSink = Callable[[Frame], None]


def filter_events(events: Iterable[Event], filters: LayoutFilters) -> List[Event]:
    """
    Apply search, entity and goal filters.

    The entity filter keeps events where the entity is a primary or a
    secondary group.

    Args:
        events: Events to filter
        filters: Active filters

    Returns:
        Events passing every active filter, in input order
    """
    search = filters.search.strip().lower()
    filtered = []

    for event in events:
        if search:
            haystack = ' '.join([
                event.title,
                event.description,
                event.goal,
                ' '.join(event.primary_groups),
                event.deadline_text,
            ]).lower()
            if search not in haystack:
                continue

        if filters.entity:
            if (filters.entity not in event.primary_groups and
                    filters.entity not in event.secondary_groups):
                continue

        if filters.goal and event.goal != filters.goal:
            continue

        filtered.append(event)

    return filtered


class LayoutOrchestrator:
    """Re-runs the layout on every view change and hands frames to a sink."""

    def __init__(
        self,
        sink: Optional[RenderSink] = None,
        engine: Optional[CollisionLayoutEngine] = None,
        viewport: Optional[ViewportState] = None,
        clock: Callable[[], date] = date.today
    ):
        """
        Initialize the orchestrator.

        Args:
            sink: Callable receiving each Frame (default: discard)
            engine: Layout engine (default: CollisionLayoutEngine())
            viewport: Initial viewport (default: ViewportState())
            clock: Callable returning today's date
        """
        self.sink = sink
        self.engine = engine or CollisionLayoutEngine()
        self.controller = self.engine.viewport_controller
        self.viewport = self.controller.clamp_viewport_zoom(viewport or ViewportState())
        self.clock = clock
        self.events: List[Event] = []
        self.mode = ViewMode.UNIFIED
        self.filters = LayoutFilters()

    def set_events(self, events: Iterable[Event]) -> Frame:
        self.events = list(events)
        return self._changed()

    def set_view_mode(self, mode: Union[ViewMode, str]) -> Frame:
        self.mode = ViewMode(mode)
        return self._changed()

    def set_filters(self, **changes: str) -> Frame:
        """Update some filters, keeping the others."""
        self.filters = replace(self.filters, **changes)
        return self._changed()

    def clear_filters(self) -> Frame:
        self.filters = LayoutFilters()
        return self._changed()

    def set_zoom(self, zoom: float) -> Frame:
        self.viewport = self.controller.set_zoom(self.viewport, zoom, self.mode)
        return self._changed()

    def zoom_in(self) -> Frame:
        return self.set_zoom(self.viewport.zoom * self.controller.ZOOM_STEP)

    def zoom_out(self) -> Frame:
        return self.set_zoom(self.viewport.zoom / self.controller.ZOOM_STEP)

    def reset_zoom(self) -> Frame:
        self.viewport = self.controller.reset(self.viewport)
        return self.render()

    def pan(self, dx: float, dy: float) -> Frame:
        self.viewport = self.controller.pan(self.viewport, dx, dy, self.mode)
        return self._changed()

    def scroll(self, delta_x: float, delta_y: float) -> Frame:
        self.viewport = self.controller.scroll(self.viewport, delta_x, delta_y, self.mode)
        return self._changed()

    def resize(self, width: float, height: float) -> Frame:
        self.viewport = replace(self.viewport, width=width, height=height)
        return self._changed()

    def filtered_events(self) -> List[Event]:
        return filter_events(self.events, self.filters)

    def clamp_viewport(self) -> ViewportState:
        """Constrain the viewport to the filtered content without rendering."""
        self.viewport = self.controller.clamp_pan(
            self.filtered_events(), self.viewport, self.mode, self.clock()
        )
        return self.viewport

    def _changed(self) -> Frame:
        self.clamp_viewport()
        return self.render()

    def build_frame(self) -> Frame:
        """
        Lay out the filtered events for the current view state.

        Returns:
            Frame; empty when no event passes the filters
        """
        today = self.clock()
        events = self.filtered_events()
        window = self.controller.content_window(events, today)
        if window is None:
            return Frame(viewport=self.viewport, mode=self.mode)

        placements = self.engine.layout(
            events,
            self.viewport,
            self.mode,
            active_entity_filter=self.filters.entity or None,
            today=today
        )

        origin = self.controller.axis_origin(self.viewport, self.mode)
        scale = self.controller.scale(self.viewport, window, self.mode)
        rows = []
        if self.mode.is_grouped:
            rows = [key for key, _ in self.engine.group_rows(events, self.mode)]

        return Frame(
            viewport=self.viewport,
            mode=self.mode,
            placements=placements,
            ticks=self.engine.axis_ticks(window, origin, scale),
            rows=rows,
            window=window,
            today_x=map_time_to_x(today, window.start, scale, origin)
        )

    def render(self) -> Frame:
        """Build a frame and forward it to the sink."""
        frame = self.build_frame()
        logger.info(
            f"Rendered {len(frame.placements)} placements in {self.mode.value} view "
            f"at zoom {self.viewport.zoom:.2f}"
        )
        if self.sink is not None:
            self.sink(frame)
        return frame
