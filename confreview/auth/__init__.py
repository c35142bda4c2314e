# Accounts: bcrypt passwords and signed access tokens
from confreview.auth.password import generate_password, hash_password, verify_password
from confreview.auth.session import (
    create_token,
    is_revoked,
    purge_expired_revocations,
    revoke_token,
    token_claims,
    verify_token,
)

__all__ = [
    "hash_password",
    "verify_password",
    "generate_password",
    "create_token",
    "verify_token",
    "is_revoked",
    "revoke_token",
    "purge_expired_revocations",
    "token_claims",
]
