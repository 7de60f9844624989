"""
Credential Verification

Stored user credentials are produced and checked by a ``CredentialVerifier``. Two
schemes are available:

- ``plain``: the secret is stored as given and compared in constant time
- ``pbkdf2``: a salted PBKDF2-SHA256 hash in ``pbkdf2_sha256$<iterations>$<salt>$<hash>`` form
"""

import base64
import hashlib
import hmac
import os

PBKDF2_ALG = "sha256"
PBKDF2_ITERATIONS = 210_000
SALT_BYTES = 16
DKLEN = 32
PBKDF2_PREFIX = "pbkdf2_sha256"


class CredentialVerifier:
    """Base class for credential schemes."""

    scheme: str = ""

    def hash(self, password: str) -> str:
        """Produce the value stored for ``password``."""
        raise NotImplementedError

    def verify(self, password: str, stored: str) -> bool:
        """Check ``password`` against a stored value."""
        raise NotImplementedError


class PlainCredentialVerifier(CredentialVerifier):
    """Shared-secret equality."""

    scheme = "plain"

    def hash(self, password: str) -> str:
        return password

    def verify(self, password: str, stored: str) -> bool:
        return hmac.compare_digest(password.encode("utf-8"), stored.encode("utf-8"))


class Pbkdf2CredentialVerifier(CredentialVerifier):
    """Salted PBKDF2-SHA256 hashes."""

    scheme = "pbkdf2"

    def __init__(self, iterations: int = PBKDF2_ITERATIONS):
        self.iterations = iterations

    def hash(self, password: str) -> str:
        salt = os.urandom(SALT_BYTES)
        dk = hashlib.pbkdf2_hmac(PBKDF2_ALG, password.encode("utf-8"), salt, self.iterations, dklen=DKLEN)
        return "{}${}${}${}".format(PBKDF2_PREFIX, self.iterations, _b64encode_nopad(salt), _b64encode_nopad(dk))

    def verify(self, password: str, stored: str) -> bool:
        try:
            prefix, iters_s, salt_s, hash_s = stored.split("$", 3)
            if prefix != PBKDF2_PREFIX:
                return False
            iters = int(iters_s)
            salt = _b64decode_nopad(salt_s)
            expected = _b64decode_nopad(hash_s)
        except ValueError:
            # Not a hash produced by this scheme
            return False
        if not expected or iters < 1:
            return False

        dk = hashlib.pbkdf2_hmac(PBKDF2_ALG, password.encode("utf-8"), salt, iters, dklen=len(expected))
        return hmac.compare_digest(dk, expected)


def _b64encode_nopad(value: bytes) -> str:
    return base64.urlsafe_b64encode(value).decode("ascii").rstrip("=")


def _b64decode_nopad(value: str) -> bytes:
    pad = "=" * ((4 - (len(value) % 4)) % 4)
    return base64.urlsafe_b64decode((value + pad).encode("ascii"))


VERIFIERS = {
    PlainCredentialVerifier.scheme: PlainCredentialVerifier,
    Pbkdf2CredentialVerifier.scheme: Pbkdf2CredentialVerifier,
}


def get_verifier(scheme: str) -> CredentialVerifier:
    """
    Build the verifier for a configured scheme.

    Parameters
    ----------
    scheme : str
        ``plain`` or ``pbkdf2``

    Returns
    -------
    CredentialVerifier
        Verifier instance

    Raises
    ------
    ValueError
        If the scheme is unknown
    """
    try:
        return VERIFIERS[scheme]()
    except KeyError:
        raise ValueError(f"Unknown credential scheme: {scheme}") from None
