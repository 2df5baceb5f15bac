from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from timesheet_viewer import config
from timesheet_viewer.cells import format_minutes
from timesheet_viewer.config import DEFAULT_CONFIG, ViewerConfig
from timesheet_viewer.grouping import SubEntry


class SegmentKind(Enum):
    NORMAL = 'normal'
    HOME = 'home'
    PARTIAL = 'partial'
    SICK = 'sick'
    OTHER = 'other'


_KIND_BY_CODE: dict[str, SegmentKind] = {
    '': SegmentKind.NORMAL,
    config.HOME_CODE: SegmentKind.HOME,
    config.PARTIAL_LEAVE_CODE: SegmentKind.PARTIAL,
    config.SICK_CODE: SegmentKind.SICK,
}


def classify_code(code: str) -> SegmentKind:
    return _KIND_BY_CODE.get(code, SegmentKind.OTHER)


@dataclass(frozen=True)
class TimelineSegment:
    start: int
    end: int
    code: str
    kind: SegmentKind

    @property
    def duration(self) -> int:
        return self.end - self.start

    def __str__(self) -> str:
        suffix = f' ({self.code})' if self.code else ''
        return f'{format_minutes(self.start)}-{format_minutes(self.end)}{suffix}'


def build_segments(entries: Iterable[SubEntry], settings: ViewerConfig = DEFAULT_CONFIG) -> list[TimelineSegment]:
    """
    Converts sub-entries into display segments clipped to the display window.

    Entries without both an arrival and a departure time are skipped, as are
    entries that end up empty after clipping. Segments keep the order of the
    sub-entries; they are neither merged nor sorted.
    """
    segments: list[TimelineSegment] = []
    for entry in entries:
        if not entry.has_times:
            continue
        start = max(settings.window_start, entry.arrival.minutes)
        end = min(settings.window_end, entry.departure.minutes)
        if end <= start:
            continue
        code = entry.absence_code
        segments.append(TimelineSegment(start=start, end=end, code=code, kind=classify_code(code)))
    return segments


def should_omit_timeline(has_target: bool, segments: list[TimelineSegment]) -> bool:
    """
    True for days with nothing to report: no target hours and either no
    segments or only sick-leave segments.
    """
    only_sick = bool(segments) and all(segment.code == config.SICK_CODE for segment in segments)
    return not has_target and (not segments or only_sick)


def timeline_to_text(segments: list[TimelineSegment]) -> str:
    """Renders segments as '08:00-12:00 | 12:30-16:00 (home_hrs)'."""
    return ' | '.join(str(segment) for segment in segments)
