import pytest

import code_generator
import main_router
import rate_limiter


class FakeModel:
    """Stands in for the provider dispatcher; records prompts, replays canned answers."""

    def __init__(self):
        self.responses = []
        self.calls = []

    def reply(self, *responses):
        self.responses.extend(responses)

    def __call__(self, prompt, model=None, max_tokens=None, temperature=0.7, system=None):
        self.calls.append({"prompt": prompt, "model": model, "temperature": temperature, "system": system})
        if not self.responses:
            raise RuntimeError("no canned response")
        answer = self.responses.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture
def fake_model(monkeypatch):
    fake = FakeModel()
    monkeypatch.setattr(code_generator, "call_model", fake)
    return fake


@pytest.fixture(autouse=True)
def _reset_limiters():
    for limiter in (rate_limiter.general_limiter, rate_limiter.auth_limiter, rate_limiter.ai_limiter):
        limiter.reset()
    yield


@pytest.fixture
def app(monkeypatch, tmp_path):
    monkeypatch.setattr(main_router, "OUTPUT_ROOT", tmp_path / "output")
    monkeypatch.setattr(main_router, "STORAGE_ROOT", tmp_path / "storage")
    main_router._storage_for.cache_clear()
    main_router.app.config.update(TESTING=True)
    yield main_router.app
    main_router._storage_for.cache_clear()


@pytest.fixture
def client(app):
    return app.test_client()
