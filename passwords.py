import secrets

from passlib.crypto.digest import pbkdf2_hmac

ITERATIONS = 100_000
KEY_LENGTH = 64
DIGEST = "sha512"


def _derive(password: str, salt: str) -> str:
    return pbkdf2_hmac(DIGEST, password, salt, ITERATIONS, KEY_LENGTH).hex()


def hash_password(password: str) -> str:
    """
    Hash a password with a fresh random salt.
    Stored format is "<salt>:<hash>", both hex.
    """
    salt = secrets.token_hex(16)
    return f"{salt}:{_derive(password, salt)}"


def verify_password(password: str, credential: str) -> bool:
    """
    Check a password against a stored "<salt>:<hash>" credential.
    Returns False for malformed credentials instead of raising.

    Note: plain string equality, not a constant-time comparison.
    """
    salt, _, stored_hash = (credential or "").partition(":")
    if not salt or not stored_hash:
        return False
    return _derive(password, salt) == stored_hash
