"""Canonical encoding and content hashing of attribute values.

Index keys embed a hash of the serialized value instead of the value itself,
so that key length stays bounded whatever the size of the indexed value.
The hash is computed over a canonical JSON rendering (sorted keys, compact
separators, non-ASCII kept as UTF-8) so that equal values always produce the
same key. For a serialized string ``s`` the digest equals
``md5(JSON.stringify(s))``, which keeps keys written by existing deployments
readable.

Numbers follow the ECMAScript Number-to-String rules (``0.00001``, ``1e-7``,
``1e+21``) and object keys are ordered by UTF-16 code units, so values
rendered here match the ones stored by existing JavaScript writers.

MD5 is used for width, not for security. Collisions are possible in theory
and are not detected.
"""

from __future__ import annotations

import hashlib
import json
import math
from typing import Any

from redis_schema.domain.errors import ValueTypeError

HASH_LENGTH = 32


def number_to_string(value: int | float) -> str:
    """Render a finite number the way ECMAScript ``String(number)`` does.

    Integral values print without a fraction, decimal notation is used for
    magnitudes in ``[1e-6, 1e21)`` and exponent notation otherwise. Digits are
    the shortest that round-trip, as given by ``repr``.

    Raises:
        ValueTypeError: If the value is not a finite number.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueTypeError(f"Invalid value {value!r}, expected a number.")
    if isinstance(value, int):
        return str(value)
    if not math.isfinite(value):
        raise ValueTypeError(f"Invalid value {value!r}, numbers must be finite.")
    if value == 0:
        return "0"
    if value < 0:
        return "-" + number_to_string(-value)

    mantissa, _, exponent = repr(value).partition("e")
    whole, _, fraction = mantissa.partition(".")
    digits = (whole + fraction).lstrip("0")
    # n: position of the decimal point relative to the first significant digit
    n = len(whole) + int(exponent or 0) - (len(whole + fraction) - len(digits))
    digits = digits.rstrip("0")
    k = len(digits)

    if k <= n <= 21:
        return digits + "0" * (n - k)
    if 0 < n <= 21:
        return f"{digits[:n]}.{digits[n:]}"
    if -6 < n <= 0:
        return "0." + "0" * -n + digits

    e = n - 1
    sign = "+" if e >= 0 else "-"
    head = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
    return f"{head}e{sign}{abs(e)}"


def _utf16_order(key: str) -> bytes:
    return key.encode("utf-16-be", "surrogatepass")


def _encode(value: Any) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, (int, float)):
        return number_to_string(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, dict):
        for key in value:
            if not isinstance(key, str):
                raise ValueTypeError(f"Invalid object key {key!r}, keys must be strings.")
        return (
            "{"
            + ",".join(
                f"{_encode(key)}:{_encode(value[key])}"
                for key in sorted(value, key=_utf16_order)
            )
            + "}"
        )
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_encode(item) for item in value) + "]"
    raise ValueTypeError(f"Invalid value {value!r}, it cannot be encoded as JSON.")


def canonical_json(value: Any) -> str:
    """Render a value as deterministic, key-order-independent JSON.

    Raises:
        ValueTypeError: If the value is not JSON encodable, including strings
            that are not valid Unicode (lone surrogates).
    """
    encoded = _encode(value)
    try:
        encoded.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise ValueTypeError(f"Invalid value {value!r}, it is not valid Unicode.") from exc
    return encoded


def content_hash(value: Any) -> str:
    """Return the fixed-length hex digest of a value's canonical encoding."""
    return hashlib.md5(canonical_json(value).encode("utf-8")).hexdigest()
