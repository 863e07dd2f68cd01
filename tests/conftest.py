"""Shared fixtures for cache and service tests."""

from __future__ import annotations

import pytest
from authlib.jose import JsonWebKey
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa


@pytest.fixture(scope="session")
def public_jwk() -> dict[str, str]:
    """Return a freshly generated RSA public key in JWK form."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    public_key_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    key = JsonWebKey.import_key(public_key_pem, {"kty": "RSA", "use": "sig"})
    return dict(key.as_dict(is_private=False))
