# planet_generator/errors.py

"""Exceptions raised by the planet generator."""


class InvalidConfiguration(ValueError):
    """A construction parameter is out of range. Nothing has been built."""


class DegenerateGeometry(RuntimeError):
    """
    A mesh invariant was violated (repeated or dangling face indices, or a
    build stage run out of order). This indicates a bug, not bad input.
    """
