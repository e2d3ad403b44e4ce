"""Per-district field encryption for officer PII.

Each district gets its own AES-SIV key, derived with HKDF-SHA256 from the
master key and the district code, so one leaked district key exposes only that
district's records. The district code is also bound as associated data.

AES-SIV is deterministic: the same plaintext and district always produce the
same ciphertext. Exact-match lookups (registry numbers, legacy values) depend on
this. The tradeoff is that equal plaintexts are recognisable as equal
ciphertexts within a district.

Decryption fails closed with :class:`DecryptionFailure`. Read paths that only
display data should use :meth:`FieldCipher.decrypt_or_placeholder`.
"""

import base64
import binascii
import logging
from functools import lru_cache

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESSIV
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from app.config import settings
from app.errors import DecryptionFailure, ValidationError
from app.metrics import DECRYPTION_FAILURES

logger = logging.getLogger(__name__)

CIPHERTEXT_PREFIX = "v1:"
PLACEHOLDER = "[unavailable]"
_KEY_LENGTH = 64  # AES-256-SIV
_KDF_INFO = b"officer-registry/district-field-key/"


class FieldCipher:
    def __init__(self, master_key: str, previous_keys: tuple[str, ...] = ()):
        if not master_key:
            raise RuntimeError(
                "FIELD_CIPHER_KEY is not set. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(48))"'
            )
        # Retired keys are only tried on decrypt, after the current key
        self._master_keys = (master_key, *previous_keys)
        self._ciphers: dict[tuple[int, str], AESSIV] = {}

    def _district_cipher(self, key_index: int, district_code: str) -> AESSIV:
        cache_key = (key_index, district_code)
        cipher = self._ciphers.get(cache_key)
        if cipher is None:
            hkdf = HKDF(
                algorithm=hashes.SHA256(),
                length=_KEY_LENGTH,
                salt=None,
                info=_KDF_INFO + district_code.encode("utf-8"),
            )
            master = self._master_keys[key_index].encode("utf-8")
            cipher = AESSIV(hkdf.derive(master))
            self._ciphers[cache_key] = cipher
        return cipher

    def encrypt(self, plaintext: str | None, district_code: str) -> str | None:
        if plaintext is None or plaintext == "":
            return None
        if not district_code:
            raise ValidationError("district_code is required for encryption")
        cipher = self._district_cipher(0, district_code)
        token = cipher.encrypt(plaintext.encode("utf-8"), [district_code.encode("utf-8")])
        return CIPHERTEXT_PREFIX + base64.urlsafe_b64encode(token).decode("ascii")

    def decrypt(self, ciphertext: str | None, district_code: str) -> str | None:
        if ciphertext is None or ciphertext == "":
            return None
        if not district_code or not ciphertext.startswith(CIPHERTEXT_PREFIX):
            raise DecryptionFailure("Unrecognised ciphertext")
        try:
            token = base64.urlsafe_b64decode(
                ciphertext[len(CIPHERTEXT_PREFIX):].encode("ascii")
            )
        except (binascii.Error, UnicodeEncodeError, ValueError):
            raise DecryptionFailure("Corrupt ciphertext")

        associated = [district_code.encode("utf-8")]
        for key_index in range(len(self._master_keys)):
            cipher = self._district_cipher(key_index, district_code)
            try:
                plaintext = cipher.decrypt(token, associated)
            except (InvalidTag, ValueError):
                continue
            if key_index:
                logger.info(
                    "Decrypted %s field with retired key #%d", district_code, key_index
                )
            return plaintext.decode("utf-8")
        raise DecryptionFailure(
            "Field could not be decrypted", details={"district_code": district_code}
        )

    def decrypt_or_placeholder(
        self, ciphertext: str | None, district_code: str, placeholder: str = PLACEHOLDER
    ) -> str | None:
        try:
            return self.decrypt(ciphertext, district_code)
        except DecryptionFailure:
            DECRYPTION_FAILURES.inc()
            logger.warning("Masked undecryptable field for district %s", district_code)
            return placeholder


@lru_cache(maxsize=1)
def get_cipher() -> FieldCipher:
    return FieldCipher(settings.field_cipher_key, settings.field_cipher_previous_keys)
