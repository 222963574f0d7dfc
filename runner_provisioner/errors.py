"""Provisioning error model.

Every failure is fatal: the provisioner never retries, so each error only
has to say what broke and carry enough context to act on it.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    CONFIG = "E_CONFIG"
    PACKAGE_INSTALL = "E_PACKAGE_INSTALL"
    FETCH = "E_FETCH"
    INTEGRITY = "E_INTEGRITY"
    EXTRACTION = "E_EXTRACTION"
    DEPENDENCY_INSTALL = "E_DEPENDENCY_INSTALL"
    IDENTITY = "E_IDENTITY"
    PRIVILEGE = "E_PRIVILEGE"
    HANDOFF = "E_HANDOFF"


class ProvisionError(Exception):
    """Base error carrying a stable code, an optional hint and context."""

    code: ErrorCode = ErrorCode.CONFIG

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        for k, v in self.context.items():
            if v:
                parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code.value,
            "message": self.args[0] if self.args else "",
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class ConfigError(ProvisionError):
    code = ErrorCode.CONFIG


class PackageInstallError(ProvisionError):
    code = ErrorCode.PACKAGE_INSTALL


class FetchError(ProvisionError):
    code = ErrorCode.FETCH


class IntegrityError(ProvisionError):
    code = ErrorCode.INTEGRITY


class ExtractionError(ProvisionError):
    code = ErrorCode.EXTRACTION


class DependencyInstallError(ProvisionError):
    code = ErrorCode.DEPENDENCY_INSTALL


class IdentityError(ProvisionError):
    code = ErrorCode.IDENTITY


class PrivilegeError(ProvisionError):
    code = ErrorCode.PRIVILEGE


class HandoffError(ProvisionError):
    code = ErrorCode.HANDOFF


__all__ = [
    "ConfigError",
    "DependencyInstallError",
    "ErrorCode",
    "ExtractionError",
    "FetchError",
    "HandoffError",
    "IdentityError",
    "IntegrityError",
    "PackageInstallError",
    "PrivilegeError",
    "ProvisionError",
]
