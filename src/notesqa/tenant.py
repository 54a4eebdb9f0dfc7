"""
Tenant key derivation.

Every note and chunk is partitioned by a tenant key derived from the
identifier the client sends. The key is one-way and stable, and shaped like
a version 4 UUID so UUID-typed storage columns accept it.
"""

import hashlib
import uuid


def derive_tenant_key(client_id: str) -> str:
    """
    Derive the tenant key for a client identifier.

    SHA-256 of the UTF-8 encoded identifier, truncated to 128 bits, with
    the version and variant bits set per RFC 4122.

    Args:
        client_id: Identifier supplied by the client

    Returns:
        Tenant key formatted as a UUID string

    Raises:
        ValueError: If client_id is empty

    Example:
        >>> derive_tenant_key("device-1") == derive_tenant_key("device-1")
        True
    """
    if not client_id:
        raise ValueError("client_id must be a non-empty string")

    digest = hashlib.sha256(client_id.encode("utf-8")).digest()
    return str(uuid.UUID(bytes=digest[:16], version=4))
