"""Form-body encoding for credentials sent to the verifier.

:func:`urlencode` implements the ``application/x-www-form-urlencoded``
flavour the verifier receives: ASCII letters, digits, ``-``, ``_`` and
``.`` are kept, a space becomes ``+``, and every other byte becomes a
lowercase ``%xx`` escape.

The input is treated as a counted byte sequence. A password containing a
NUL byte is encoded in full (``%00``), never cut short.
"""

from __future__ import annotations

import string

_SAFE_BYTES = frozenset((string.ascii_letters + string.digits + "-_.").encode("ascii"))
_SPACE = ord(" ")


def urlencode(raw: bytes | str) -> str:
    """Percent/plus-encode *raw* for use as a form field value.

    Args:
        raw: The value to encode. ``str`` input is UTF-8 encoded first.

    Returns:
        The encoded ASCII string. Every escaped byte takes exactly three
        characters, so distinct bytes always yield distinct escapes.

    Example::

        >>> urlencode(b"jo doe+1@x")
        'jo+doe%2b1%40x'
    """
    if isinstance(raw, str):
        raw = raw.encode("utf-8")

    parts: list[str] = []
    for byte in raw:
        if byte in _SAFE_BYTES:
            parts.append(chr(byte))
        elif byte == _SPACE:
            parts.append("+")
        else:
            parts.append(f"%{byte:02x}")
    return "".join(parts)
