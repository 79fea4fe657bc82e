"""Tests for the per-user model preference store."""

import pytest

from difybot.common.enums import ModelName
from difybot.core.preferences import PreferenceStore


def test_unknown_user_gets_default():
    store = PreferenceStore()
    assert store.get("U-unknown") == ModelName.CLAUDE
    assert store.get("U-unknown") == "claude"


def test_set_then_get():
    store = PreferenceStore()
    store.set("U1", "gemini")

    assert store.get("U1") == "gemini"
    assert store.get("U2") == "claude"


def test_later_set_overwrites():
    store = PreferenceStore()
    store.set("U1", "gemini")
    store.set("U1", "ChatGPT")

    assert store.get("U1") == ModelName.CHATGPT


def test_rejects_unknown_model():
    store = PreferenceStore()
    with pytest.raises(ValueError):
        store.set("U1", "llama")


def test_evicts_least_recently_active_user():
    store = PreferenceStore(capacity=2)
    store.set("U1", "gemini")
    store.set("U2", "chatgpt")

    # Reading U1 makes U2 the least recently active
    store.get("U1")
    store.set("U3", "gemini")

    assert len(store) == 2
    assert store.peek("U2") is None
    assert store.get("U1") == "gemini"
    assert store.get("U3") == "gemini"


def test_custom_default_model():
    store = PreferenceStore(default_model="gemini")
    assert store.get("anyone") == ModelName.GEMINI
