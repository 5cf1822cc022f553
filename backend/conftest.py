"""Shared fixtures for the portfo test suite."""

import pytest

from portfo import sessions
from portfo.models.schemas import Card, CardContent, CardSize, PortfolioState, Section
from portfo.store.store import PortfolioStore
from portfo.tools import token_counter


def make_card(card_id: str, cols: int = 1, rows: int = 1, **content) -> Card:
    return Card(id=card_id, size=CardSize(cols=cols, rows=rows), content=CardContent(**content))


@pytest.fixture
def sample_state() -> PortfolioState:
    return PortfolioState(sections=[
        Section(id="s-work", title="Work", cards=[
            make_card("c-landing", 2, 2, title="Landing page"),
            make_card("c-hello", 1, 1, type="text", text="Hello world"),
            make_card("c-video", 1, 1, type="video", video_url="https://cdn.example.com/reel.mp4", title="Reel"),
        ]),
        Section(id="s-about", title="About", cards=[
            make_card("c-portrait", 1, 2, title="Portrait"),
        ]),
    ])


@pytest.fixture
def store(sample_state) -> PortfolioStore:
    return PortfolioStore(sample_state)


@pytest.fixture(autouse=True)
def _reset_globals():
    yield
    sessions.clear_sessions()
    token_counter._counter = None
