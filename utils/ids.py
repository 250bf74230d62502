"""
Tracking IDs and timestamps attached to errors, crashes and health reports.

IDs are KSUIDs: 4 bytes of seconds since the KSUID epoch followed by 16 random
bytes, base62 encoded to a fixed 27 characters so they sort by creation time.
"""

import secrets
import time
from datetime import datetime, timezone

KSUID_EPOCH = 1400000000  # 2014-05-13
KSUID_LENGTH = 27
_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"


def now_micros():
    """Microseconds since the Unix epoch."""
    return time.time_ns() // 1000


def format_timestamp(epoch_us=None):
    """ISO 8601 UTC timestamp with microsecond precision, e.g. 2024-01-02T03:04:05.000006Z."""
    if epoch_us is None:
        epoch_us = now_micros()
    seconds, micros = divmod(epoch_us, 1_000_000)
    moment = datetime.fromtimestamp(seconds, tz=timezone.utc).replace(microsecond=micros)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _base62(value):
    digits = []
    while value:
        value, rem = divmod(value, 62)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits)).rjust(KSUID_LENGTH, "0")


def generate_ksuid():
    """New 27-character, time-sortable unique ID."""
    elapsed = int(time.time()) - KSUID_EPOCH
    payload = elapsed.to_bytes(4, "big") + secrets.token_bytes(16)
    return _base62(int.from_bytes(payload, "big"))
