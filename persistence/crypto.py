import os
import base64
from typing import Iterable, Optional

from dotenv import load_dotenv
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

load_dotenv()

HEADER = b"v1"


class CryptoUtils:
    """
    AES-256-GCM for checkpoint channel values.

    Payload layout is HEADER + 12 byte nonce + ciphertext, base64 encoded.
    """

    def __init__(self, key: bytes):
        if len(key) != 32:
            raise RuntimeError(
                f"ENCRYPTION_KEY must decode to 32 bytes for AES-256. Got {len(key)} bytes."
            )
        self._aesgcm = AESGCM(key)

    @classmethod
    def from_b64(cls, key_b64: Optional[str]) -> "CryptoUtils":
        if not key_b64:
            raise RuntimeError("ENCRYPTION_KEY missing in .env")
        return cls(base64.b64decode(key_b64))

    @classmethod
    def from_env(cls) -> "CryptoUtils":
        return cls.from_b64(os.getenv("ENCRYPTION_KEY"))

    @staticmethod
    def generate_key_b64() -> str:
        return base64.b64encode(AESGCM.generate_key(bit_length=256)).decode("utf-8")

    @staticmethod
    def should_encrypt(key: str, encrypt_keys: Iterable[str]) -> bool:
        return key in encrypt_keys

    def encrypt_bytes(self, plaintext: bytes, aad: bytes) -> str:
        nonce = os.urandom(12)
        ct = self._aesgcm.encrypt(nonce, plaintext, aad)
        payload = HEADER + nonce + ct
        return base64.b64encode(payload).decode("utf-8")

    def decrypt_bytes(self, payload_b64: str, aad: bytes) -> bytes:
        raw = base64.b64decode(payload_b64.encode("utf-8"))
        if raw[:2] != HEADER:
            raise ValueError("Not encrypted with expected format/version header")
        nonce = raw[2:14]
        ct = raw[14:]
        return self._aesgcm.decrypt(nonce, ct, aad)
