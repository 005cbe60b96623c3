import os

import pytest

# Keep the developer's real state file and backend out of the test run.
os.environ["HABIT_BREAKER_BACKEND_URL"] = "http://testserver"
os.environ["HABIT_BREAKER_LOG_JSON"] = "true"

from fake_backend import FakeBackend  # noqa: E402

from habit_client.config import ClientConfig  # noqa: E402
from habit_client.controller import SessionController  # noqa: E402
from habit_client.local_store import LocalStore  # noqa: E402


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def config(tmp_path):
    return ClientConfig(base_url="http://testserver", state_file=tmp_path / "state.json")


@pytest.fixture
def store(config):
    return LocalStore(config.state_file)


@pytest.fixture
async def controller(backend, config, store):
    c = SessionController(config, store=store, transport=backend.transport())
    yield c
    await c.aclose()


@pytest.fixture
async def signed_in(backend, controller):
    """Controller with a registered user, after the post-login reload."""
    assert await controller.register("sam@example.com", "hunter22", "Sam")
    backend.calls.clear()
    return controller
