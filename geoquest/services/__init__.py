"""Service layer helpers."""

from .courses import course_to_dict, layout_from_course
from .geo import evaluate_position, haversine_m
from .gpx import parse_gpx_course
from .providers import ProviderStatusCache
from .task_stream import task_event_stream

__all__ = [
    "ProviderStatusCache",
    "course_to_dict",
    "evaluate_position",
    "haversine_m",
    "layout_from_course",
    "parse_gpx_course",
    "task_event_stream",
]
