"""Test factories for creating test data."""

from tests.factories.interview import FrozenClock, ParticipantFactory, SessionFactory
from tests.factories.notifications import RecordingAdapter
from tests.factories.synthesis import RoutedModelGateway, dimension_json, framework_responses

__all__ = [
    "FrozenClock",
    "ParticipantFactory",
    "RecordingAdapter",
    "RoutedModelGateway",
    "SessionFactory",
    "dimension_json",
    "framework_responses",
]
