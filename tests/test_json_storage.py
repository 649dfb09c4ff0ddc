from __future__ import annotations

import json
import os

import pytest

from adapters.json_storage import JsonFileState, processed_keys_state, subscriptions_state
from core.models import Subscription


def test_missing_file_loads_as_none(tmp_path) -> None:
    assert processed_keys_state(str(tmp_path / "nowhere")).load() is None


def test_empty_and_corrupt_files_load_as_none(tmp_path) -> None:
    path = tmp_path / "processed_records.json"
    state = processed_keys_state(str(tmp_path))

    path.write_text("", encoding="utf-8")
    assert state.load() is None

    path.write_text('{"half": ', encoding="utf-8")
    assert state.load() is None

    # Valid JSON with the wrong shape is just as unusable.
    path.write_text('{"keys": []}', encoding="utf-8")
    assert state.load() is None


def test_save_creates_directory_and_leaves_no_temp_files(tmp_path) -> None:
    state_dir = tmp_path / "nested" / "state"
    state = processed_keys_state(str(state_dir))

    state.save(frozenset({"b", "a"}))

    assert os.listdir(state_dir) == ["processed_records.json"]
    assert json.loads((state_dir / "processed_records.json").read_text(encoding="utf-8")) == ["a", "b"]
    assert state.load() == frozenset({"a", "b"})


def test_subscriptions_document_shape(tmp_path) -> None:
    state = subscriptions_state(str(tmp_path))
    subscriptions = frozenset({Subscription(2, "lamp"), Subscription(1, "sofa")})

    state.save(subscriptions)

    raw = json.loads((tmp_path / "subscriptions.json").read_text(encoding="utf-8"))
    assert raw == [{"chat_id": 1, "filter": "sofa"}, {"chat_id": 2, "filter": "lamp"}]
    assert state.load() == subscriptions


def test_failed_encode_keeps_previous_file(tmp_path) -> None:
    path = tmp_path / "state.json"

    def encode(value):
        if value == "bad":
            raise TypeError("cannot encode")
        return value

    state = JsonFileState(str(path), encode, str)
    state.save("good")

    with pytest.raises(TypeError):
        state.save("bad")

    assert state.load() == "good"
    assert os.listdir(tmp_path) == ["state.json"]
