"""
Partner Sync - Contact Normalization
====================================
Canonical forms for the two matching keys between Partner and User.

Phone numbers are the primary key and are matched exactly after trimming;
no country-code rewriting is attempted. Emails are stored lowercase, so
lookups lowercase as well.
"""

import re
from typing import Optional

NON_DIGITS = re.compile(r'\D+')


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Trim a phone number for exact matching.

    Examples:
        >>> normalize_phone("  +919876543210 ")
        '+919876543210'
        >>> normalize_phone("   ") is None
        True
    """
    if phone is None:
        return None
    phone = phone.strip()
    return phone or None


def normalize_email(email: Optional[str]) -> Optional[str]:
    """
    Lowercase and trim an email address; blank values become None.

    Examples:
        >>> normalize_email(" Asha@Example.COM ")
        'asha@example.com'
    """
    if email is None:
        return None
    email = email.strip().lower()
    return email or None


def phone_digits(phone: Optional[str]) -> str:
    """Digits of a phone number, used to derive synthetic identities."""
    return NON_DIGITS.sub('', phone or '')
