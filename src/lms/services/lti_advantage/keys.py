"""
Platform signing keys.

The LMS signs id_tokens with its RSA private key (RS256) and publishes the
public half as a JWK set.  Message hints, which only the LMS itself reads
back, are signed with a shared secret (HS256).
"""

from __future__ import annotations

import hashlib
import time
from dataclasses import dataclass
from typing import Any

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey
from pylti1p3.registration import Registration


def _compute_key_id(public_key: RSAPublicKey) -> str:
    numbers = public_key.public_numbers()
    modulus_bytes = numbers.n.to_bytes((numbers.n.bit_length() + 7) // 8, "big")
    return hashlib.sha256(modulus_bytes).hexdigest()[:16]


@dataclass(frozen=True)
class KeySet:
    private_key_pem: str
    public_key_pem: str
    key_id: str

    @classmethod
    def from_pem(
        cls, private_key_pem: str, public_key_pem: str | None = None, key_id: str | None = None
    ) -> KeySet:
        """Build a key set, deriving the public key and key id when not given."""
        private_key = serialization.load_pem_private_key(private_key_pem.encode("utf-8"), password=None)
        if not isinstance(private_key, RSAPrivateKey):
            raise ValueError("LTI signing key must be an RSA private key")
        public_key = private_key.public_key()
        if not public_key_pem:
            public_key_pem = public_key.public_bytes(
                serialization.Encoding.PEM,
                serialization.PublicFormat.SubjectPublicKeyInfo,
            ).decode("utf-8")
        return cls(
            private_key_pem=private_key_pem,
            public_key_pem=public_key_pem,
            key_id=key_id or _compute_key_id(public_key),
        )

    def jwk(self) -> dict[str, Any]:
        jwk = dict(Registration.get_jwk(self.public_key_pem))
        jwk["kid"] = self.key_id
        jwk["alg"] = "RS256"
        jwk["use"] = "sig"
        return jwk

    def jwks_document(self) -> dict[str, Any]:
        return {"keys": [self.jwk()]}

    def sign(self, claims: dict[str, Any]) -> str:
        return jwt.encode(
            claims, self.private_key_pem, algorithm="RS256", headers={"kid": self.key_id}
        )


def sign_message_hint(payload: dict[str, Any], secret: str, ttl: int) -> str:
    claims = {**payload, "exp": int(time.time()) + ttl}
    return jwt.encode(claims, secret, algorithm="HS256")


def decode_message_hint(token: str, secret: str) -> dict[str, Any]:
    """Decode a message hint; raises ``jwt.PyJWTError`` if invalid or expired."""
    return jwt.decode(token, secret, algorithms=["HS256"])
