"""
Assertion Minter — signed service-account JWTs for Google OAuth2.

Builds the RS256 assertion that proves the dispatcher's identity to
Google's token endpoint (the JWT-bearer grant from RFC 7523):

    header:  {"alg": "RS256", "typ": "JWT"}
    payload: {"iss": <client_email>, "scope": <FCM scope>,
              "aud": <token endpoint>, "iat": now, "exp": now + 3300}

Both objects are serialized as compact JSON, base64url-encoded without
padding, and signed with RSASSA-PKCS1-v1_5 / SHA-256. PyJWT does the
encoding and signing; this module owns the claims and key parsing.

A fresh assertion is minted for every dispatch. Google rejects any
assertion whose lifetime exceeds one hour.
"""

import base64
import binascii
import logging
import re
import time

import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from app.core.errors import CryptoError
from app.models.credentials import ServiceAccountCredential, SignedAssertion

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"

ASSERTION_ALGORITHM = "RS256"
ASSERTION_LIFETIME_SECONDS = 55 * 60  # 3300s, under Google's 3600s ceiling
MAX_ASSERTION_LIFETIME_SECONDS = 60 * 60

_PEM_ARMOR = re.compile(r"-----(?:BEGIN|END)[A-Z ]*-----")
_WHITESPACE = re.compile(r"\s+")


# ===================================================================
# Private Key Parsing
# ===================================================================

def load_private_key(pem: str) -> rsa.RSAPrivateKey:
    """
    Parse a PEM-encoded PKCS8 RSA private key.

    Keys copied out of a service-account JSON file often arrive with
    literal "\\n" sequences instead of newlines, and sometimes with
    stray whitespace in the body. Both are normalized before the body
    is base64-decoded into DER.

    Raises:
        CryptoError: If the key cannot be decoded or is not an RSA key.
    """
    normalized = pem.replace("\\n", "\n")
    body = _WHITESPACE.sub("", _PEM_ARMOR.sub("", normalized))

    try:
        der = base64.b64decode(body, validate=True)
        key = serialization.load_der_private_key(der, password=None)
    except (binascii.Error, ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise CryptoError(f"Failed to parse service account private key: {exc}") from exc

    if not isinstance(key, rsa.RSAPrivateKey):
        raise CryptoError("Service account private key must be an RSA key")
    return key


# ===================================================================
# Assertion Minting
# ===================================================================

def build_assertion_claims(client_email: str, issued_at: int) -> dict:
    """Claims for the JWT-bearer grant, valid for ASSERTION_LIFETIME_SECONDS."""
    return {
        "iss": client_email,
        "scope": FCM_SCOPE,
        "aud": GOOGLE_TOKEN_URI,
        "iat": issued_at,
        "exp": issued_at + ASSERTION_LIFETIME_SECONDS,
    }


def mint_assertion(
    credential: ServiceAccountCredential,
    now: float | None = None,
) -> SignedAssertion:
    """
    Sign a single-use assertion for the given service account.

    Args:
        credential: Service account whose client_email becomes the issuer.
        now: Issue time as a Unix timestamp. Defaults to the current time.

    Returns:
        SignedAssertion with header, payload and signature segments.

    Raises:
        CryptoError: If the key cannot be parsed or signing fails.
    """
    issued_at = int(now if now is not None else time.time())
    claims = build_assertion_claims(credential.client_email, issued_at)
    key = load_private_key(credential.private_key.get_secret_value())

    try:
        token = jwt.encode(
            claims,
            key,
            algorithm=ASSERTION_ALGORITHM,
            headers={"typ": "JWT"},
        )
    except (jwt.PyJWTError, ValueError, TypeError) as exc:
        raise CryptoError(f"Failed to sign service account assertion: {exc}") from exc

    logger.debug(
        "Minted FCM assertion (iss=%s, iat=%d, exp=%d)",
        credential.client_email,
        claims["iat"],
        claims["exp"],
    )
    return SignedAssertion.from_compact(token)
