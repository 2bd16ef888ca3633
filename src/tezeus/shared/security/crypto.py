from __future__ import annotations

import base64
import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from tezeus.config import get_settings
from tezeus.shared.exceptions import CryptoError


@dataclass(frozen=True, slots=True)
class CryptoEnvelope:
    """
    Serialized ciphertext bundle for storage in a JSON column.
    Fields:
      - v: version (for future rotation)
      - alg: algorithm hint
      - iv: base64url(nonce)
      - ct: base64url(ciphertext)
    """
    v: int
    alg: str
    iv: str
    ct: str

    def to_json(self) -> Dict[str, Any]:
        return {"v": self.v, "alg": self.alg, "iv": self.iv, "ct": self.ct}


def _b64e(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64d(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def generate_key() -> str:
    """A fresh base64url 32-byte key suitable for CRYPTO_MASTER_KEY."""
    return _b64e(AESGCM.generate_key(bit_length=256))


class CryptoService:
    """
    AES-256-GCM envelope encryption using a single KEK from settings.
    Used for gateway API tokens stored in evolution_instance_tokens.

    SETTINGS:
      CRYPTO_MASTER_KEY = base64url-encoded 32-byte key (AES-256)
    """
    ALG = "AES-256-GCM"

    def __init__(self, key_b64: Optional[str] = None) -> None:
        key_b64 = key_b64 or get_settings().CRYPTO_MASTER_KEY
        if not key_b64:
            raise CryptoError("Missing CRYPTO_MASTER_KEY (base64url-encoded 32-byte key).")
        try:
            key = _b64d(key_b64)
        except Exception as exc:
            raise CryptoError("Invalid CRYPTO_MASTER_KEY encoding.") from exc

        if len(key) != 32:
            raise CryptoError("CRYPTO_MASTER_KEY must decode to 32 bytes (AES-256).")
        self._kek = key

    def encrypt(self, plaintext_json: Any) -> Dict[str, Any]:
        """
        Encrypt a JSON value; returns an envelope object to be stored in the DB.
        """
        aes = AESGCM(self._kek)
        iv = os.urandom(12)
        pt = json.dumps(plaintext_json, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        ct = aes.encrypt(iv, pt, None)
        return CryptoEnvelope(v=1, alg=self.ALG, iv=_b64e(iv), ct=_b64e(ct)).to_json()

    def decrypt(self, envelope_json: Dict[str, Any]) -> Any:
        """
        Decrypt an envelope produced by `encrypt`.
        """
        try:
            if str(envelope_json.get("alg")) != self.ALG:
                raise CryptoError("Unsupported algorithm in envelope.")
            iv = _b64d(envelope_json["iv"])
            ct = _b64d(envelope_json["ct"])
        except CryptoError:
            raise
        except Exception as exc:
            raise CryptoError("Malformed envelope.") from exc

        try:
            pt = AESGCM(self._kek).decrypt(iv, ct, None)
        except Exception as exc:
            raise CryptoError("Decryption failed.") from exc

        return json.loads(pt.decode("utf-8"))

    @staticmethod
    def redact_marker() -> Dict[str, bool]:
        """Marker for API responses: the secret exists but is never revealed."""
        return {"redacted": True, "has_value": True}
