"""Exception taxonomy for key handling and signing.

I/O failures are not wrapped: ``OSError`` from open/stat/read/write/rename
propagates to the caller unchanged. A signature that does not verify is a
``False`` result, never one of these exceptions.
"""

from __future__ import annotations


class SigilError(Exception):
    """Base class for all sigil errors."""


class FormatError(SigilError, ValueError):
    """Serialized record is malformed: bad YAML, bad base64, wrong lengths."""


class AuthenticationError(SigilError):
    """Password verification tag did not match the stored tag."""


class RangeError(SigilError, ValueError):
    """Requested byte range lies outside the source."""


__all__ = ["AuthenticationError", "FormatError", "RangeError", "SigilError"]
