"""
Utility functions package.
"""
from schoolshare.utils.security import (
    hash_password,
    verify_password,
    create_access_token,
    decode_access_token,
    generate_share_token,
)

__all__ = [
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_access_token",
    "generate_share_token",
]
