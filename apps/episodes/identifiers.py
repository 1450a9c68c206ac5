"""
Episode identifiers.

Episode ids are generated in the application, not by a database sequence:
``EP-<epoch milliseconds>-<9 random base-36 characters>``. Collisions need
two ids in the same millisecond with the same 36**9 suffix.
"""
import secrets
import string
import time

EPISODE_ID_PREFIX = 'EP'
_SUFFIX_ALPHABET = string.digits + string.ascii_uppercase
_SUFFIX_LENGTH = 9


def generate_episode_id():
    millis = int(time.time() * 1000)
    suffix = ''.join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(_SUFFIX_LENGTH))
    return f'{EPISODE_ID_PREFIX}-{millis}-{suffix}'
