"""Shamir secret sharing over GF(256), compatible with Vault key shares.

Arithmetic uses the AES polynomial 0x11B. A share is the y-values of every
secret byte followed by a single x-coordinate byte.
"""

import base64
import binascii
import secrets
from typing import List, Sequence

from .types import FormatError

_POLY_REDUCED = 0x1B  # 0x11B without the x^8 term


def gf_mul(a: int, b: int) -> int:
    res = 0
    while b:
        if b & 1:
            res ^= a
        hi = a & 0x80
        a = (a << 1) & 0xFF
        if hi:
            a ^= _POLY_REDUCED
        b >>= 1
    return res


def gf_pow(a: int, power: int) -> int:
    result = 1
    base = a
    while power:
        if power & 1:
            result = gf_mul(result, base)
        base = gf_mul(base, base)
        power >>= 1
    return result


def gf_inv(a: int) -> int:
    if a == 0:
        raise ZeroDivisionError("No inverse for zero in GF(256)")
    return gf_pow(a, 254)


def gf_div(a: int, b: int) -> int:
    if a == 0:
        return 0
    return gf_mul(a, gf_inv(b))


def interpolate_at_zero(x_samples: Sequence[int], y_samples: Sequence[int]) -> int:
    """Lagrange interpolation of the sampled polynomial, evaluated at x = 0."""
    result = 0
    for i, (x_i, y_i) in enumerate(zip(x_samples, y_samples)):
        basis = 1
        for j, x_j in enumerate(x_samples):
            if i == j:
                continue
            # Addition and subtraction are both XOR, so (0 - x_j)/(x_i - x_j).
            basis = gf_mul(basis, gf_div(x_j, x_i ^ x_j))
        result ^= gf_mul(y_i, basis)
    return result


def combine(shares: Sequence[bytes]) -> bytes:
    """
    Reconstruct a secret from key shares.

    Args:
        shares: At least the threshold number of shares, all the same length

    Returns:
        The reconstructed secret

    Raises:
        FormatError: If the shares are inconsistent
    """
    if len(shares) < 2:
        raise FormatError("less than two parts cannot be used to reconstruct the secret")

    share_length = len(shares[0])
    if share_length < 2:
        raise FormatError("parts must be at least two bytes")
    if any(len(share) != share_length for share in shares):
        raise FormatError("all parts must be the same length")

    x_samples = [share[-1] for share in shares]
    if len(set(x_samples)) != len(x_samples):
        raise FormatError("duplicate part detected")

    return bytes(
        interpolate_at_zero(x_samples, [share[index] for share in shares])
        for index in range(share_length - 1)
    )


def split(secret: bytes, parts: int, threshold: int) -> List[bytes]:
    """
    Split a secret into ``parts`` shares, any ``threshold`` of which recombine.

    Raises:
        ValueError: If the parameters are out of range
    """
    if not secret:
        raise ValueError("cannot split an empty secret")
    if parts < threshold:
        raise ValueError("parts cannot be less than threshold")
    if parts > 255:
        raise ValueError("parts cannot exceed 255")
    if threshold < 2:
        raise ValueError("threshold must be at least 2")

    x_coordinates = list(range(1, 256))
    secrets.SystemRandom().shuffle(x_coordinates)
    x_coordinates = x_coordinates[:parts]

    shares = [bytearray(len(secret) + 1) for _ in range(parts)]
    for share, x in zip(shares, x_coordinates):
        share[-1] = x

    for index, value in enumerate(secret):
        coefficients = [value] + [secrets.randbelow(256) for _ in range(threshold - 1)]
        for share, x in zip(shares, x_coordinates):
            share[index] = _evaluate(coefficients, x)

    return [bytes(share) for share in shares]


def _evaluate(coefficients: Sequence[int], x: int) -> int:
    """Horner evaluation of a polynomial given lowest coefficient first."""
    result = 0
    for coefficient in reversed(coefficients):
        result = gf_mul(result, x) ^ coefficient
    return result


def decode_share(text: str) -> bytes:
    """
    Decode a base64 key share or key, ignoring surrounding whitespace.

    Raises:
        FormatError: If the text is not valid base64
    """
    try:
        return base64.b64decode(text.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise FormatError(f"key is not valid base64: {e}")


def encode_key(key: bytes) -> str:
    """Standard base64 encoding used to display a reconstructed key."""
    return base64.b64encode(key).decode("ascii")
