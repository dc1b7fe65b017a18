"""Verification code generation."""

import secrets

from .exceptions import CodeGenerationError, InvalidCodeLength

_DIGITS = "0123456789"


def generate_numeric_code(length: int) -> str:
    """
    Generate a cryptographically secure numeric code.

    Uses the secrets module (OS CSPRNG). Returns a string to preserve
    leading zeros.

    Raises:
        InvalidCodeLength: length is not positive
        CodeGenerationError: the entropy source is unavailable
    """
    if length <= 0:
        raise InvalidCodeLength(f"code length must be positive, got {length}")
    try:
        return "".join(secrets.choice(_DIGITS) for _ in range(length))
    except OSError as e:
        raise CodeGenerationError(f"entropy source unavailable: {e}") from e
