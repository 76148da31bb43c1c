"""
tests/test_config.py -- Tests for Settings validation.

Covers:
  - bcrypt cost derived from DEBUG when not set explicitly
  - explicit BCRYPT_ROUNDS honored, out-of-range values rejected
  - non-positive session / activation lifetimes rejected
  - documented defaults (30 day sessions, 15 minute activation tokens)
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings


class TestSettings:
    def test_debug_uses_minimum_bcrypt_cost(self) -> None:
        assert Settings(debug=True, bcrypt_rounds=0).bcrypt_rounds == 4

    def test_production_uses_default_bcrypt_cost(self) -> None:
        assert Settings(debug=False, bcrypt_rounds=0, secure_cookies=True).bcrypt_rounds == 12

    def test_explicit_bcrypt_cost(self) -> None:
        assert Settings(debug=True, bcrypt_rounds=10).bcrypt_rounds == 10

    def test_bcrypt_cost_out_of_range(self) -> None:
        with pytest.raises(ValidationError):
            Settings(debug=True, bcrypt_rounds=3)

    def test_non_positive_session_lifetime(self) -> None:
        with pytest.raises(ValidationError):
            Settings(debug=True, session_expire_seconds=0)

    def test_non_positive_activation_lifetime(self) -> None:
        with pytest.raises(ValidationError):
            Settings(debug=True, activation_expire_seconds=-1)

    def test_lifetime_defaults(self) -> None:
        settings = Settings(debug=True)
        assert settings.session_expire_seconds == 30 * 24 * 60 * 60
        assert settings.activation_expire_seconds == 15 * 60
        assert settings.session_rotate_on_renew is False
