"""Client proof calculation for the HiLink SCRAM-SHA-256 login.

The device runs a variant of SCRAM-SHA-256:

    password_hash    = hex(SHA256(password))
    salted_key       = PBKDF2-HMAC-SHA256(password_hash, salt, iterations, 32)
    client_key       = HMAC(salted_key, "Client Key")
    stored_key       = SHA256(client_key)
    auth_message     = client_nonce "," server_nonce "," server_nonce
    client_signature = HMAC(stored_key, auth_message)
    client_proof     = client_key XOR client_signature

Unlike RFC 5802 the password is pre-hashed and the auth message repeats the
server nonce instead of carrying the client final message. Devices only accept
proofs built exactly this way.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

CLIENT_KEY = b"Client Key"
SERVER_KEY = b"Server Key"
SALTED_KEY_LENGTH = 32
NONCE_SIZE = 32


def _sha256(payload: bytes) -> bytes:
    return hashlib.sha256(payload).digest()


def _hmac_sha256(key: bytes, payload: bytes) -> bytes:
    return hmac.new(key, payload, hashlib.sha256).digest()


def generate_nonce(size: int = NONCE_SIZE) -> str:
    """Return size random bytes from a secure source, hex encoded."""
    return secrets.token_bytes(size).hex()


def salted_key(password: str, salt: str, iterations: int) -> bytes:
    """Derive the salted key from the password and the hex encoded salt."""
    password_hash = hashlib.sha256(password.encode()).hexdigest()
    return hashlib.pbkdf2_hmac(
        "sha256",
        password_hash.encode(),
        bytes.fromhex(salt),
        iterations,
        SALTED_KEY_LENGTH,
    )


def auth_message(client_nonce: str, server_nonce: str) -> bytes:
    """Return the message both sides sign."""
    return f"{client_nonce},{server_nonce},{server_nonce}".encode()


def calculate_client_proof(
    password: str, client_nonce: str, server_nonce: str, salt: str, iterations: int
) -> str:
    """Return the hex encoded client proof for a challenge."""
    client_key = _hmac_sha256(salted_key(password, salt, iterations), CLIENT_KEY)
    stored_key = _sha256(client_key)
    client_signature = _hmac_sha256(
        stored_key, auth_message(client_nonce, server_nonce)
    )
    return bytes(a ^ b for a, b in zip(client_key, client_signature)).hex()


def calculate_server_signature(
    password: str, client_nonce: str, server_nonce: str, salt: str, iterations: int
) -> str:
    """Return the hex encoded signature a device holding the password sends."""
    server_key = _hmac_sha256(salted_key(password, salt, iterations), SERVER_KEY)
    return _hmac_sha256(server_key, auth_message(client_nonce, server_nonce)).hex()
