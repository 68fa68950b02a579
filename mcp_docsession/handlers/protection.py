"""
Edit protection handlers.

A protected document rejects every EditHandler except unprotect.
"""

from typing import Any

from ..context import OperationContext
from ..document import Protection, hash_password
from ..errors import StateConflictError
from ..parameters import ParameterBag
from ..registry import EditHandler
from .common import ProtectionType


class ProtectHandler(EditHandler):
    operation = "protect"

    def parse(self, parameters: ParameterBag, context: OperationContext) -> Protection:
        if context.document.is_protected:
            raise StateConflictError("Document is already protected")
        protection_type = parameters.get_optional("protection_type", ProtectionType, ProtectionType.READ_ONLY)
        return Protection(
            protection_type=protection_type.value,
            password_hash=hash_password(parameters.get_required("password")),
        )

    def apply(self, context: OperationContext, protection: Protection) -> dict[str, Any]:
        context.document.protection = protection
        return {"protected": True, "protection_type": protection.protection_type}


class UnprotectHandler(EditHandler):
    operation = "unprotect"
    respects_protection = False

    def parse(self, parameters: ParameterBag, context: OperationContext) -> None:
        protection = context.document.protection
        if protection is None:
            raise StateConflictError("Document is not protected")
        if hash_password(parameters.get_required("password")) != protection.password_hash:
            raise StateConflictError("Incorrect password")

    def apply(self, context: OperationContext, args: None) -> dict[str, bool]:
        context.document.protection = None
        return {"protected": False}
