"""Pytest configuration and shared fixtures."""

import pytest

from perfector.config import Settings
from perfector.jobs.store import JobStore
from perfector.llm.router import GenerationRouter
from perfector.pipeline.executor import PipelineExecutor
from perfector.reliability.cache import get_cache
from perfector.reliability.idempotency import get_idempotency_cache

_KEY_VARS = (
    "GEMINI_API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "GROQ_API_KEY",
    "OPENROUTER_API_KEY",
)


class FakeClock:
    """Manually advanced millisecond clock for the reliability stores."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """No real API keys and no shared cache state between tests."""
    for var in _KEY_VARS:
        monkeypatch.delenv(var, raising=False)
    get_cache().clear()
    get_idempotency_cache().clear()
    yield
    get_cache().clear()
    get_idempotency_cache().clear()


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def store():
    return JobStore()


@pytest.fixture
def executor(store, settings):
    return PipelineExecutor(store, router=GenerationRouter(adapters={}), settings=settings)


LONG_ARTICLE = """
<div class="tldr"><p><strong>TL;DR:</strong> Trail running shoes need grip, protection and fit.</p></div>
<h2>What Is a Trail Running Shoe?</h2>
<p>A trail running shoe is built for dirt, rock and roots. For example, lugged outsoles grip loose ground.
You should try several pairs before you buy. Start with a short run on a familiar path.</p>
<h2>How Does Cushioning Work?</h2>
<p>Cushioning absorbs impact on long descents. When I started running trails, my experience taught me
that firm foam works best. Learn how your stride changes on steep ground.</p>
<div class="key-takeaways"><ul><li>Grip matters</li><li>Fit matters more</li></ul></div>
<div class="checklist"><ul><li>Check the lugs</li><li>Check the toe box</li></ul></div>
<div class="faq"><h3>Why is fit important?</h3><p>Because blisters end runs.</p></div>
"""


@pytest.fixture
def long_article():
    return LONG_ARTICLE
