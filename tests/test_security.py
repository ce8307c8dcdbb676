"""Tests for password handling and the role permission matrix."""

from __future__ import annotations

import pytest

from fbms.backend.core.auth.permissions import has_permission, require_permission
from fbms.backend.core.auth.security import (
    hash_password,
    is_valid_email,
    new_token,
    validate_password_strength,
    verify_password,
)
from fbms.backend.core.errors import PermissionDeniedError


class TestPasswords:
    def test_hash_and_verify(self) -> None:
        stored = hash_password("Mabuhay#2024", iterations=1000)
        assert stored.startswith("pbkdf2_sha256$1000$")
        assert verify_password("Mabuhay#2024", stored)
        assert not verify_password("mabuhay#2024", stored)

    def test_salts_differ(self) -> None:
        assert hash_password("x", iterations=10) != hash_password("x", iterations=10)

    @pytest.mark.parametrize("stored", ["", "plain", "md5$1$salt$abc"])
    def test_malformed_hash(self, stored: str) -> None:
        assert not verify_password("anything", stored)

    def test_strength_rules(self) -> None:
        assert validate_password_strength("Secret@123") == []
        assert len(validate_password_strength("abc")) == 4

    def test_email(self) -> None:
        assert is_valid_email("cashier@store.ph")
        assert not is_valid_email("cashier@store")
        assert not is_valid_email(None)

    def test_tokens_are_unique(self) -> None:
        assert new_token() != new_token()


class TestPermissions:
    def test_admin_has_everything(self) -> None:
        assert has_permission("admin", "backup", "restore")
        assert has_permission("admin", "users", "write")

    def test_cashier(self) -> None:
        assert has_permission("cashier", "pos", "write")
        assert not has_permission("cashier", "pos", "void")
        assert not has_permission("cashier", "reports", "read")

    def test_manager_cannot_restore_backups(self) -> None:
        assert has_permission("manager", "backup", "write")
        assert not has_permission("manager", "backup", "restore")

    def test_unknown_role(self) -> None:
        assert not has_permission("intern", "inventory", "read")

    def test_require_raises(self) -> None:
        with pytest.raises(PermissionDeniedError):
            require_permission("employee", "payroll", "read")
