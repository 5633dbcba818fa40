"""Unit tests for model mapping details."""

from sqlalchemy import inspect

from agora.models import Event


def test_event_child_collections_are_never_lazy_loaded() -> None:
    relationships = inspect(Event).relationships

    assert relationships["options"].lazy == "selectin"
    assert relationships["entries"].lazy == "raise"
    assert relationships["payouts"].lazy == "raise"
