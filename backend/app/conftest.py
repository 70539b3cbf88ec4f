# app/conftest.py
import pytest

from app.lobby.matcher import reset_lobby


@pytest.fixture(autouse=True)
def fresh_lobby():
    # lobby locks must not outlive the event loop of the test that created them
    reset_lobby()
    yield
    reset_lobby()


@pytest.fixture(autouse=True)
def fresh_channel_layer():
    from channels.layers import channel_layers

    channel_layers.backends.clear()
    yield
    channel_layers.backends.clear()
