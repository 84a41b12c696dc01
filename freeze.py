"""Deep-freeze nested node data so it can be compared and hashed as a snapshot."""

import functools

from frozendict import frozendict


def deep_freeze(value):
    """Recursively convert dicts to frozendicts and lists/sets to tuples.

    Precondition:
        value is any JSON-like structure (dicts, lists, scalars)

    Postcondition:
        returns an immutable, hashable equivalent of value
        later mutation of value does not affect the returned snapshot

    Args:
        value: structure to freeze

    Returns:
        frozen copy of value
    """
    if isinstance(value, dict):
        return frozendict({key: deep_freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(deep_freeze(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(deep_freeze(item) for item in value)
    return value


def freezeargs(func):
    """Decorator freezing dict/list arguments, so func can sit under functools.cache."""

    @functools.wraps(func)
    def wrapped(*args, **kwargs):
        args = tuple(deep_freeze(arg) for arg in args)
        kwargs = {key: deep_freeze(value) for key, value in kwargs.items()}
        return func(*args, **kwargs)
    return wrapped
