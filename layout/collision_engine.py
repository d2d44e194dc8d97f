"""Collision-free placement of event labels on the timeline."""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence, Tuple, Union

from processor.models import (
    AxisTick,
    Event,
    LayoutPlacement,
    Side,
    TimeWindow,
    ViewMode,
    ViewportState,
)
from viewport.controller import ViewportController, map_time_to_x, to_day

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PositionedEvent:
    """Event with its pixel extent on the axis."""
    event: Event
    x: float
    x2: float
    day: float


class CollisionLayoutEngine:
    """Assigns each event a level and side so labels never overlap."""

    LABEL_HEIGHT = 30
    UNIFIED_SPACING = 200  # Unified labels carry a goal subtitle
    GROUPED_SPACING = 80
    TICK_LABEL_WIDTH = 60
    TICK_CLEARANCE = 30
    GROUPED_ABOVE_OFFSET = 15
    GROUPED_BELOW_OFFSET = 20

    def __init__(self, viewport_controller: Optional[ViewportController] = None):
        """
        Initialize the layout engine.

        Args:
            viewport_controller: Geometry source (default: ViewportController())
        """
        self.viewport_controller = viewport_controller or ViewportController()

    def tick_interval(self, window: TimeWindow) -> int:
        """Days between axis ticks for a window."""
        if window.span < 90:
            return 7
        if window.span < 365:
            return 30
        return 90

    def axis_ticks(self, window: TimeWindow, origin: float, scale: float) -> list[AxisTick]:
        """
        Compute periodic date ticks and the spans reserved for their labels.

        Args:
            window: Content window
            origin: Pixel position of the window start
            scale: Pixels per day

        Returns:
            List of AxisTick from the window start to its end
        """
        interval = self.tick_interval(window)
        half_width = self.TICK_LABEL_WIDTH / 2
        first_day = date.min.toordinal()
        last_day = date.max.toordinal()
        ticks = []

        day = window.start
        while day <= window.end:
            x = map_time_to_x(day, window.start, scale, origin)
            # Padding can push the window past the calendar's limits
            label_day = min(max(int(day), first_day), last_day)
            label = date.fromordinal(label_day).strftime('%b %Y')
            ticks.append(AxisTick(
                day=day,
                x=x,
                label=label,
                span_start=x - half_width,
                span_end=x + half_width
            ))
            day += interval

        return ticks

    def position_events(
        self,
        events: Iterable[Event],
        window: TimeWindow,
        origin: float,
        scale: float
    ) -> list[PositionedEvent]:
        """
        Map events to pixel extents, sorted by start instant.

        Events without a temporal value are left out. The sort is stable so
        events starting on the same day keep their input order.

        Args:
            events: Events to position
            window: Content window
            origin: Pixel position of the window start
            scale: Pixels per day

        Returns:
            Sorted list of PositionedEvent
        """
        positioned = []
        for event in events:
            temporal = event.temporal
            if temporal is None:
                logger.debug(f"Skipping event '{event.title}' without a resolved date")
                continue

            x = map_time_to_x(temporal.start_date, window.start, scale, origin)
            x2 = x
            if temporal.is_range:
                x2 = map_time_to_x(temporal.end_date, window.start, scale, origin)

            positioned.append(PositionedEvent(
                event=event,
                x=x,
                x2=x2,
                day=to_day(temporal.start_date)
            ))

        positioned.sort(key=lambda item: item.day)
        return positioned

    def _conflicts_with_spans(
        self,
        item: PositionedEvent,
        reserved_spans: Sequence[Tuple[float, float]]
    ) -> bool:
        for span_start, span_end in reserved_spans:
            if not (item.x2 + self.TICK_CLEARANCE < span_start or
                    item.x - self.TICK_CLEARANCE > span_end):
                return True
        return False

    def assign_levels(
        self,
        positioned: Sequence[PositionedEvent],
        spacing: float,
        reserved_spans: Sequence[Tuple[float, float]] = ()
    ) -> list[list[PositionedEvent]]:
        """
        Greedy first-fit level assignment.

        Each event joins the lowest existing level whose last event ends
        more than ``spacing`` pixels before it starts, provided it does not
        overlap a reserved span; otherwise a new level is opened.

        Args:
            positioned: Events sorted by start instant
            spacing: Minimum horizontal gap between labels in a level
            reserved_spans: (start, end) pixel spans kept clear in existing levels

        Returns:
            Levels, each a list of events in placement order
        """
        levels: list[list[PositionedEvent]] = []

        for item in positioned:
            assigned = None
            for index, level in enumerate(levels):
                if level[-1].x2 + spacing < item.x:
                    if not self._conflicts_with_spans(item, reserved_spans):
                        assigned = index
                        break

            if assigned is None:
                levels.append([])
                assigned = len(levels) - 1

            levels[assigned].append(item)

        return levels

    def group_rows(self, events: Iterable[Event], mode: ViewMode) -> list[Tuple[str, list[Event]]]:
        """
        Group events into sorted rows for grouped views.

        By-entity rows include an event under each of its primary and
        secondary groups; by-goal rows use the event's goal.

        Args:
            events: Events to group
            mode: BY_ENTITY or BY_GOAL

        Returns:
            List of (row key, events) sorted by key
        """
        groups: dict[str, list[Event]] = {}
        for event in events:
            if mode is ViewMode.BY_ENTITY:
                keys = list(event.primary_groups) + list(event.secondary_groups)
            else:
                keys = [event.goal or '']
            for key in dict.fromkeys(keys):
                groups.setdefault(key, []).append(event)

        return [(key, groups[key]) for key in sorted(groups)]

    def layout(
        self,
        events: Sequence[Event],
        viewport: ViewportState,
        mode: Union[ViewMode, str] = ViewMode.UNIFIED,
        active_entity_filter: Optional[str] = None,
        today: Optional[date] = None
    ) -> list[LayoutPlacement]:
        """
        Lay out events for the given viewport and view mode.

        Args:
            events: Events to place (already filtered)
            viewport: Current viewport
            mode: View mode or its string value
            active_entity_filter: Entity whose events go above the baseline
            today: Extends the content window so today is representable

        Returns:
            List of LayoutPlacement; empty when nothing can be placed
        """
        try:
            mode = ViewMode(mode)
        except ValueError:
            logger.warning(f"Unknown view mode: {mode!r}")
            return []

        window = self.viewport_controller.content_window(events, today)
        if window is None:
            return []

        viewport = self.viewport_controller.clamp_viewport_zoom(viewport)
        if mode is ViewMode.UNIFIED:
            return self._layout_unified(events, viewport, window, active_entity_filter)
        return self._layout_grouped(events, viewport, window, mode)

    def _layout_unified(
        self,
        events: Sequence[Event],
        viewport: ViewportState,
        window: TimeWindow,
        active_entity_filter: Optional[str]
    ) -> list[LayoutPlacement]:
        controller = self.viewport_controller
        origin = controller.axis_origin(viewport, ViewMode.UNIFIED)
        scale = controller.scale(viewport, window, ViewMode.UNIFIED)
        baseline_y = viewport.height / 2

        positioned = self.position_events(events, window, origin, scale)
        placements = []

        if active_entity_filter:
            # Level-0 labels sit one row from the axis and can hit tick labels
            reserved = [
                (tick.span_start, tick.span_end)
                for tick in self.axis_ticks(window, origin, scale)
            ]
            primary = [p for p in positioned if active_entity_filter in p.event.primary_groups]
            secondary = [p for p in positioned if active_entity_filter not in p.event.primary_groups]

            for side, partition in ((Side.ABOVE, primary), (Side.BELOW, secondary)):
                direction = -1 if side is Side.ABOVE else 1
                levels = self.assign_levels(partition, self.UNIFIED_SPACING, reserved)
                for level_index, level in enumerate(levels):
                    for item in level:
                        placements.append(LayoutPlacement(
                            event=item.event,
                            x=item.x,
                            x2=item.x2,
                            level=level_index,
                            side=side,
                            label_offset=direction * (level_index + 1) * self.LABEL_HEIGHT,
                            baseline_y=baseline_y,
                            is_primary=side is Side.ABOVE
                        ))
            return placements

        # No tick reservation here: labels start at row 2 (rows_out below)
        levels = self.assign_levels(positioned, self.UNIFIED_SPACING)
        for level_index, level in enumerate(levels):
            side = Side.ABOVE if level_index % 2 == 0 else Side.BELOW
            direction = -1 if side is Side.ABOVE else 1
            # First row is left free for the axis tick labels
            rows_out = level_index // 2 + 2
            for item in level:
                placements.append(LayoutPlacement(
                    event=item.event,
                    x=item.x,
                    x2=item.x2,
                    level=level_index,
                    side=side,
                    label_offset=direction * rows_out * self.LABEL_HEIGHT,
                    baseline_y=baseline_y
                ))

        return placements

    def _layout_grouped(
        self,
        events: Sequence[Event],
        viewport: ViewportState,
        window: TimeWindow,
        mode: ViewMode
    ) -> list[LayoutPlacement]:
        controller = self.viewport_controller
        origin = controller.axis_origin(viewport, mode)
        scale = controller.scale(viewport, window, mode)
        row_height = controller.row_height(viewport.zoom)
        placements = []

        for row_index, (key, row_events) in enumerate(self.group_rows(events, mode)):
            baseline_y = controller.MARGIN_TOP + row_index * row_height + viewport.pan_y
            positioned = self.position_events(row_events, window, origin, scale)

            if mode is ViewMode.BY_ENTITY:
                primary = [p for p in positioned if key in p.event.primary_groups]
                secondary = [p for p in positioned if key not in p.event.primary_groups]
            else:
                primary, secondary = positioned, []

            for level_index, level in enumerate(self.assign_levels(primary, self.GROUPED_SPACING)):
                for item in level:
                    placements.append(LayoutPlacement(
                        event=item.event,
                        x=item.x,
                        x2=item.x2,
                        level=level_index,
                        side=Side.ABOVE,
                        label_offset=-(level_index * self.LABEL_HEIGHT + self.GROUPED_ABOVE_OFFSET),
                        baseline_y=baseline_y,
                        row=key,
                        is_primary=True
                    ))

            for level_index, level in enumerate(self.assign_levels(secondary, self.GROUPED_SPACING)):
                for item in level:
                    placements.append(LayoutPlacement(
                        event=item.event,
                        x=item.x,
                        x2=item.x2,
                        level=level_index,
                        side=Side.BELOW,
                        label_offset=level_index * self.LABEL_HEIGHT + self.GROUPED_BELOW_OFFSET,
                        baseline_y=baseline_y,
                        row=key,
                        is_primary=False
                    ))

        return placements
