"""Random short-code generation.

Codes are uniform draws from a 62-symbol alphanumeric alphabet. Nothing is
consulted at generation time; callers verify uniqueness against the store.
"""

from nanoid import generate

from app.config import get_settings

__all__ = ["ALPHABET", "generate_short_code", "widened_length"]

settings = get_settings()

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"

# Extra characters used once the collision retry budget is exhausted.
WIDENING = 2


def generate_short_code(length: int = settings.SHORT_CODE_LENGTH) -> str:
    assert isinstance(length, int) and length > 0, f"length must be a positive integer, got {length!r}"
    return generate(ALPHABET, length)


def widened_length(length: int = settings.SHORT_CODE_LENGTH) -> int:
    return length + WIDENING
