from __future__ import annotations

import base64
import binascii
import logging
import re
from pathlib import Path
from typing import Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.hazmat.primitives.serialization import load_der_private_key
from jose import JWTError, jwt

from ..core.domain.exceptions import CredentialError
from ..core.domain.models import CREDENTIAL_VALIDITY, AppCredential
from ..core.ports.clock_port import ClockPort, SystemClock

logger = logging.getLogger(__name__)


PKCS1_MARKER = "BEGIN RSA PRIVATE KEY"
_PEM_BOUNDARY_RE = re.compile(r"-----(?:BEGIN|END) [A-Z ]+-----")

# AlgorithmIdentifier ::= SEQUENCE { OID 1.2.840.113549.1.1.1 (rsaEncryption), NULL }
_RSA_ALGORITHM_IDENTIFIER = bytes(
    [0x30, 0x0D, 0x06, 0x09, 0x2A, 0x86, 0x48, 0x86, 0xF7, 0x0D, 0x01, 0x01, 0x01, 0x05, 0x00]
)
_VERSION_ZERO = bytes([0x02, 0x01, 0x00])
_SEQUENCE_TAG = 0x30
_OCTET_STRING_TAG = 0x04

JWT_ALGORITHM = "RS256"


def _der_length(length: int) -> bytes:
    """Encode a DER length: short form below 128, minimal long form otherwise."""
    if length < 0x80:
        return bytes([length])
    body = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([0x80 | len(body)]) + body


def pkcs1_to_pkcs8(pkcs1_der: bytes) -> bytes:
    """Wrap a PKCS#1 RSAPrivateKey in a PKCS#8 PrivateKeyInfo structure.

    PrivateKeyInfo ::= SEQUENCE {
        version             INTEGER (0),
        privateKeyAlgorithm AlgorithmIdentifier (rsaEncryption, NULL),
        privateKey          OCTET STRING (the PKCS#1 bytes, unchanged)
    }

    Both length fields (outer SEQUENCE and OCTET STRING) are derived from the
    input size, so the result is byte-identical to what OpenSSL emits for the
    same key.
    """
    if not pkcs1_der:
        raise CredentialError("Private key is empty")
    octet_string = bytes([_OCTET_STRING_TAG]) + _der_length(len(pkcs1_der)) + pkcs1_der
    content = _VERSION_ZERO + _RSA_ALGORITHM_IDENTIFIER + octet_string
    return bytes([_SEQUENCE_TAG]) + _der_length(len(content)) + content


def _pem_body(pem: str) -> str:
    body = _PEM_BOUNDARY_RE.sub("", pem)
    # Keys pasted into env vars often carry literal "\n" sequences
    body = body.replace("\\n", "")
    return "".join(body.split())


def load_private_key(pem: str) -> RSAPrivateKey:
    """Parse a PEM RSA private key in either PKCS#1 or PKCS#8 form."""
    is_pkcs1 = PKCS1_MARKER in pem
    try:
        der = base64.b64decode(_pem_body(pem), validate=True)
    except (binascii.Error, ValueError) as e:
        raise CredentialError("Private key is not valid base64") from e

    if is_pkcs1:
        der = pkcs1_to_pkcs8(der)

    try:
        key = load_der_private_key(der, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise CredentialError("Private key could not be parsed") from e

    if not isinstance(key, RSAPrivateKey):
        raise CredentialError(f"Private key is not an RSA key: {type(key).__name__}")
    return key


def _signing_pem(key: RSAPrivateKey) -> str:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


class PrivateKeySource:
    """Resolves PEM key material from an inline string or a file path.

    Resolution happens on every read() so a rotated key file is picked up
    without a restart. Nothing read here is cached or logged.
    """

    def __init__(self, inline: Optional[str] = None, path: Optional[str | Path] = None) -> None:
        self._inline = inline
        self._path = Path(path) if path else None

    def read(self) -> str:
        if self._inline and self._inline.strip():
            return self._inline
        if self._path is not None:
            if not self._path.is_file():
                raise CredentialError(f"Private key file not found: {self._path}")
            try:
                return self._path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise CredentialError(f"Private key file is not readable: {self._path}") from e
        raise CredentialError("No private key configured (set private_key or private_key_path)")


class CredentialMinter:
    def __init__(self, app_id: Optional[str], key_source: PrivateKeySource, clock: Optional[ClockPort] = None) -> None:
        self._app_id = app_id
        self._key_source = key_source
        self._clock = clock or SystemClock()

    def mint(self) -> AppCredential:
        """Sign a fresh RS256 app credential valid for ten minutes from now."""
        if not self._app_id:
            raise CredentialError("No GitHub App ID configured")

        key = load_private_key(self._key_source.read())

        issued_at = self._clock.now().replace(microsecond=0)
        expires_at = issued_at + CREDENTIAL_VALIDITY
        payload = {
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "iss": str(self._app_id),
        }
        try:
            token = jwt.encode(payload, _signing_pem(key), algorithm=JWT_ALGORITHM)
        except (JWTError, ValueError, TypeError) as e:
            raise CredentialError("Failed to sign app credential") from e

        logger.debug("Minted app credential for app %s, expires at %s", self._app_id, expires_at.isoformat())
        return AppCredential(issuer=str(self._app_id), issued_at=issued_at, expires_at=expires_at, token=token)
