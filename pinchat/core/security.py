import secrets

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_USERNAME_LENGTH = 3
MIN_PIN_LENGTH = 4

def hash_pin(pin: str) -> str:
    """
    Hash a PIN using bcrypt. The salt is embedded in the returned hash.
    """
    return pwd_context.hash(pin)

def verify_pin(plain_pin: str, hashed_pin: str) -> bool:
    """
    Verify a PIN against its hash.
    """
    return pwd_context.verify(plain_pin, hashed_pin)

def is_weak_credential(name: str, pin: str) -> bool:
    return len(name.strip()) < MIN_USERNAME_LENGTH or len(pin) < MIN_PIN_LENGTH

def new_session_id() -> str:
    """
    Generate an opaque, unguessable session identifier for the session cookie.
    """
    return secrets.token_urlsafe(32)
