"""Tests for settings validation."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from ledger_app.config import Settings


def test_defaults():
    settings = Settings(database_url="sqlite://")

    assert settings.balance_tolerance == Decimal("0.01")
    assert settings.balance_tolerance_mode == "absolute"
    assert settings.entry_number_prefix == "JE"


def test_relative_tolerance_mode_accepted():
    settings = Settings(database_url="sqlite://", balance_tolerance_mode="relative")

    assert settings.balance_tolerance_mode == "relative"


def test_unknown_tolerance_mode_rejected():
    with pytest.raises(ValidationError):
        Settings(database_url="sqlite://", balance_tolerance_mode="relativ")


def test_tolerance_mode_from_environment(monkeypatch):
    monkeypatch.setenv("BALANCE_TOLERANCE_MODE", "percent")

    with pytest.raises(ValidationError):
        Settings(database_url="sqlite://")
