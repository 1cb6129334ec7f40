# backend/app/security/validator.py
"""
Syntactic checks on submitted credentials.

The password field is never the plaintext: clients send
base64url(hex(SHA-512(plaintext))), i.e. 128 hex characters once decoded.
No I/O and no hashing happens here.
"""
import base64
import binascii
import ipaddress
import re
from typing import Optional

from email_validator import EmailNotValidError, validate_email

from backend.app.core import errors
from backend.app.schemas.user import Credentials

SHA512_HEX_RE = re.compile(r"[A-Fa-f0-9]{128}")
BASE64URL_RE = re.compile(r"[A-Za-z0-9_-]*={0,2}")


def decode_password_field(password: str) -> bytes:
    """
    Decode the base64url password field to the 128 hex characters it wraps.

    Raises:
        InvalidPasswordFormatError: bad base64, wrong length or non-hex
    """
    # urlsafe_b64decode alone would also take "+" and "/"
    if not BASE64URL_RE.fullmatch(password):
        raise errors.InvalidPasswordFormatError()

    padded = password + "=" * (-len(password) % 4)
    try:
        decoded = base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError):
        raise errors.InvalidPasswordFormatError()

    if not SHA512_HEX_RE.fullmatch(decoded.decode("latin-1")):
        raise errors.InvalidPasswordFormatError()
    return decoded


def validate_email_format(email: str) -> None:
    """Address grammar only; the host lookup happens when mailing the code."""
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        raise errors.InvalidEmailError(f"invalid email ({e})")


def validate_credentials(credentials: Credentials) -> None:
    """
    Validate email and password format.

    Raises:
        InvalidEmailError
        InvalidPasswordFormatError
    """
    validate_email_format(credentials.email)
    decode_password_field(credentials.password)


def normalize_ip(ip: Optional[str]) -> Optional[str]:
    """Canonical text of a valid IPv4/IPv6 address, otherwise None."""
    if not ip:
        return None
    try:
        return str(ipaddress.ip_address(ip.strip()))
    except ValueError:
        return None
