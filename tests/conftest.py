import pytest

from pplsim.catalog import catalog_from_dict
from pplsim.session import EngineContext
from pplsim.settings import EngineSettings
from pplsim.state import GameState


class ScriptedRandom:
    """Returns queued values from ``random()``, then ``default`` forever."""

    def __init__(self, values=(), default=0.5):
        self.values = list(values)
        self.default = default

    def random(self):
        if self.values:
            return self.values.pop(0)
        return self.default


def make_event(event_id, **fields):
    event = {"id": event_id, "text": f"Something about {event_id}.", "options": [{"text": "Carry on"}]}
    event.update(fields)
    return event


@pytest.fixture
def scripted():
    return ScriptedRandom


@pytest.fixture
def event_data():
    return make_event


@pytest.fixture
def build_catalog():
    def _build(events, chains=None, *, validate=True, **sections):
        data = {"title": "Test Catalog", "events": list(events), "chains": chains or {}}
        data.update(sections)
        return catalog_from_dict(data, validate=validate)

    return _build


@pytest.fixture
def make_state():
    def _make(day=2, **overrides):
        stats = {
            "morale": 70,
            "knowledge": 30,
            "safety": 50,
            "fatigue": 10,
            "money": 18000,
            "flight_hours": 5.0,
        }
        stats.update(overrides)
        return GameState(day=day, stats=stats)

    return _make


@pytest.fixture
def make_context():
    def _make(catalog, rng=None, **settings):
        return EngineContext(
            catalog=catalog,
            settings=EngineSettings(**settings) if settings else EngineSettings(),
            rng=rng if rng is not None else ScriptedRandom(),
        )

    return _make
