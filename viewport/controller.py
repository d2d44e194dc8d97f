"""Viewport transform: time-to-pixel mapping, zoom and pan."""
import logging
from dataclasses import replace
from datetime import date
from typing import Iterable, Optional, Union

from processor.models import Event, TimeWindow, ViewMode, ViewportState

logger = logging.getLogger(__name__)

Day = Union[date, float, int]


def to_day(value: Day) -> float:
    """Convert a date to ordinal days; numbers pass through."""
    if isinstance(value, date):
        return float(value.toordinal())
    return float(value)


def map_time_to_x(value: Day, window_start: float, scale: float, origin_x: float) -> float:
    """
    Map a calendar instant to a horizontal pixel position.

    Args:
        value: Date or ordinal day
        window_start: First day of the content window (ordinal days)
        scale: Pixels per day
        origin_x: Pixel position of the window start

    Returns:
        Horizontal pixel position
    """
    return origin_x + (to_day(value) - window_start) * scale


class ViewportController:
    """Owns the zoom/pan geometry of the timeline surface."""

    MARGIN_TOP = 60
    MARGIN_RIGHT = 100
    MARGIN_BOTTOM = 60
    MARGIN_LEFT = 100
    LABEL_COLUMN_WIDTH = 180  # Frozen row-label column in grouped views
    BASE_ROW_HEIGHT = 80
    ROW_HEIGHT_ZOOM_THRESHOLD = 2.5
    MIN_ZOOM = 0.1
    MAX_ZOOM = 10.0
    ZOOM_STEP = 1.2
    WINDOW_PADDING_RATIO = 0.1
    DEGENERATE_PADDING_DAYS = 30

    def clamp_zoom(self, zoom: float) -> float:
        return max(self.MIN_ZOOM, min(self.MAX_ZOOM, zoom))

    def clamp_viewport_zoom(self, viewport: ViewportState) -> ViewportState:
        """Bring an out-of-range zoom back within bounds, keeping the pan."""
        zoom = self.clamp_zoom(viewport.zoom)
        if zoom == viewport.zoom:
            return viewport
        logger.debug(f"Clamped zoom from {viewport.zoom} to {zoom}")
        return replace(viewport, zoom=zoom)

    def origin_x(self, mode: ViewMode) -> float:
        """Left edge of the drawable time axis before panning."""
        if mode.is_grouped:
            return self.LABEL_COLUMN_WIDTH
        return self.MARGIN_LEFT

    def available_width(self, viewport: ViewportState, mode: ViewMode) -> float:
        if mode.is_grouped:
            return viewport.width - self.LABEL_COLUMN_WIDTH
        return viewport.width - self.MARGIN_LEFT - self.MARGIN_RIGHT

    def axis_origin(self, viewport: ViewportState, mode: ViewMode) -> float:
        """Pixel position of the window start after panning."""
        return self.origin_x(mode) + viewport.pan_x

    def scale(self, viewport: ViewportState, window: TimeWindow, mode: ViewMode) -> float:
        """Pixels per day at the current zoom."""
        return (self.available_width(viewport, mode) * viewport.zoom) / window.span

    def row_height(self, zoom: float) -> float:
        """
        Height of a grouped-view row.

        Rows grow as zoom drops below the threshold so that labels stacked
        in a row keep clear of the next row.
        """
        zoom = self.clamp_zoom(zoom)
        if zoom >= self.ROW_HEIGHT_ZOOM_THRESHOLD:
            return self.BASE_ROW_HEIGHT
        return self.BASE_ROW_HEIGHT * (self.ROW_HEIGHT_ZOOM_THRESHOLD / zoom)

    def content_window(
        self,
        events: Iterable[Event],
        today: Optional[date] = None
    ) -> Optional[TimeWindow]:
        """
        Compute the padded time window covering all events.

        Args:
            events: Events to cover; events without a temporal value are ignored
            today: Included in the window when given

        Returns:
            TimeWindow or None if no event has a temporal value
        """
        days = []
        for event in events:
            if event.temporal is None:
                continue
            days.append(to_day(event.temporal.start_date))
            if event.temporal.end_date is not None:
                days.append(to_day(event.temporal.end_date))

        if not days:
            return None

        if today is not None:
            days.append(to_day(today))

        min_day = min(days)
        max_day = max(days)
        padding = (max_day - min_day) * self.WINDOW_PADDING_RATIO
        if not padding:
            padding = self.DEGENERATE_PADDING_DAYS

        return TimeWindow(start=min_day - padding, end=max_day + padding)

    def set_zoom(
        self,
        viewport: ViewportState,
        new_zoom: float,
        mode: ViewMode = ViewMode.UNIFIED
    ) -> ViewportState:
        """
        Change zoom while keeping the instant at the viewport centre fixed.

        The scale is proportional to zoom, so the centre instant's distance
        from the axis origin scales by the zoom ratio. In grouped views the
        row height also depends on zoom and the row at the vertical centre
        is kept there as well.

        Args:
            viewport: Current viewport
            new_zoom: Requested zoom factor (clamped to bounds)
            mode: Current view mode

        Returns:
            New ViewportState
        """
        viewport = self.clamp_viewport_zoom(viewport)
        zoom = self.clamp_zoom(new_zoom)
        center_x = viewport.width / 2
        center_y = viewport.height / 2

        origin = self.origin_x(mode)
        offset_at_center = center_x - viewport.pan_x - origin
        pan_x = center_x - origin - offset_at_center * (zoom / viewport.zoom)

        pan_y = viewport.pan_y
        if mode.is_grouped:
            old_row_height = self.row_height(viewport.zoom)
            new_row_height = self.row_height(zoom)
            if old_row_height != new_row_height:
                row_at_center = (center_y - viewport.pan_y - self.MARGIN_TOP) / old_row_height
                pan_y = center_y - self.MARGIN_TOP - row_at_center * new_row_height

        return replace(viewport, zoom=zoom, pan_x=pan_x, pan_y=pan_y)

    def zoom_in(self, viewport: ViewportState, mode: ViewMode = ViewMode.UNIFIED) -> ViewportState:
        return self.set_zoom(viewport, viewport.zoom * self.ZOOM_STEP, mode)

    def zoom_out(self, viewport: ViewportState, mode: ViewMode = ViewMode.UNIFIED) -> ViewportState:
        return self.set_zoom(viewport, viewport.zoom / self.ZOOM_STEP, mode)

    def reset(self, viewport: ViewportState) -> ViewportState:
        return replace(viewport, zoom=1.0, pan_x=0.0, pan_y=0.0)

    def pan(
        self,
        viewport: ViewportState,
        dx: float,
        dy: float,
        mode: ViewMode = ViewMode.UNIFIED
    ) -> ViewportState:
        """Add drag deltas; the unified view has no vertical pan."""
        pan_y = viewport.pan_y + dy if mode.is_grouped else viewport.pan_y
        return replace(viewport, pan_x=viewport.pan_x + dx, pan_y=pan_y)

    def scroll(
        self,
        viewport: ViewportState,
        delta_x: float,
        delta_y: float,
        mode: ViewMode = ViewMode.UNIFIED
    ) -> ViewportState:
        """Apply wheel deltas; vertical scrolling only moves grouped views."""
        return self.pan(viewport, -delta_x, -delta_y, mode)

    def row_count(self, events: Iterable[Event], mode: ViewMode) -> int:
        keys = set()
        for event in events:
            if mode is ViewMode.BY_ENTITY:
                keys.update(event.primary_groups)
                keys.update(event.secondary_groups)
            elif mode is ViewMode.BY_GOAL and event.goal:
                keys.add(event.goal)
        return len(keys)

    def clamp_pan(
        self,
        events: list[Event],
        viewport: ViewportState,
        mode: ViewMode = ViewMode.UNIFIED,
        today: Optional[date] = None
    ) -> ViewportState:
        """
        Constrain pan so the timeline content stays reachable.

        The content's left edge may not pass the right screen edge and its
        right edge may not pass the left margin. In grouped views the first
        row may not drop below the top margin and the last row may not rise
        above the bottom margin.

        Args:
            events: Events being displayed
            viewport: Viewport to constrain
            mode: Current view mode
            today: Included in the content window when given

        Returns:
            Constrained ViewportState (unchanged when there is no content)
        """
        window = self.content_window(events, today)
        if window is None:
            return viewport

        viewport = self.clamp_viewport_zoom(viewport)

        origin = self.origin_x(mode)
        total_width = window.span * self.scale(viewport, window, mode)

        max_pan_x = viewport.width - origin
        min_pan_x = -total_width
        pan_x = max(min_pan_x, min(max_pan_x, viewport.pan_x))

        pan_y = viewport.pan_y
        if mode.is_grouped:
            rows = self.row_count(events, mode)
            if rows > 0:
                content_height = rows * self.row_height(viewport.zoom)
                max_pan_y = 0.0
                min_pan_y = min(
                    0.0,
                    -(content_height - viewport.height + self.MARGIN_TOP + self.MARGIN_BOTTOM)
                )
                pan_y = max(min_pan_y, min(max_pan_y, pan_y))

        if pan_x == viewport.pan_x and pan_y == viewport.pan_y:
            return viewport

        logger.debug(f"Clamped pan from ({viewport.pan_x}, {viewport.pan_y}) to ({pan_x}, {pan_y})")
        return replace(viewport, pan_x=pan_x, pan_y=pan_y)
