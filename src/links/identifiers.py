import random
import secrets
import string
import uuid
from typing import Optional

ALPHABET = string.ascii_letters + string.digits
_BASE36 = string.ascii_lowercase + string.digits


def generate_secret_id() -> str:
    """Return a 128-bit random token used as a link's secret key."""
    try:
        return str(uuid.uuid4())
    except NotImplementedError:
        # no OS entropy source; two pseudo-random chunks is the best we can do
        return "".join(random.choices(_BASE36, k=13)) + "".join(random.choices(_BASE36, k=13))


def generate_short_id(length: int = 8) -> str:
    if length < 1:
        raise ValueError("Short id length must be positive.")
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def secret_matches(expected: str, supplied: Optional[str]) -> bool:
    if not supplied:
        return False
    return secrets.compare_digest(expected.encode(), supplied.encode())
