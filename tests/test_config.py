from __future__ import annotations

import pytest
from pydantic import ValidationError

from kara_runtime.config import Settings


def test_defaults() -> None:
    current = Settings(_env_file=None)

    assert current.app_name == "kara-runtime"
    assert current.max_steps == 10_000
    assert current.push_mushrooms is False
    assert current.default_dialect == "JavaKara"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KARA_MAX_STEPS", "250")
    monkeypatch.setenv("KARA_PUSH_MUSHROOMS", "true")

    current = Settings(_env_file=None)

    assert current.max_steps == 250
    assert current.push_mushrooms is True


def test_ceiling_must_be_positive(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KARA_FSM_MAX_STEPS", "0")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
