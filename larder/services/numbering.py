"""Document numbers: PREFIX-<epoch millis>-<random>."""

import string
import time

from django.utils.crypto import get_random_string

ALPHANUMERIC = string.ascii_uppercase + string.digits


def stamp() -> str:
    return str(int(time.time() * 1000))


def random_code(length: int) -> str:
    return get_random_string(length, allowed_chars=ALPHANUMERIC)


def document_number(prefix: str, *parts: str, length: int = 9) -> str:
    """document_number('TRF') -> 'TRF-1718000000000-K3J9QX2ZL'"""
    return '-'.join([prefix, *parts, stamp(), random_code(length)])
