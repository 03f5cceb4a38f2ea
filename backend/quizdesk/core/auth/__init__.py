"""
Authentication: credential table, identity tokens and request guards.
"""
from .credentials import CredentialTable
from .dependencies import get_current_identity
from .security import create_identity_token, hash_password, verify_password

__all__ = [
    "CredentialTable",
    "get_current_identity",
    "create_identity_token",
    "hash_password",
    "verify_password",
]
