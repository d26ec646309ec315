"""
An implementation of the preference store based on a simple in-memory look-up.

This is provided primarily for testing purposes
"""
from copy import deepcopy
from collections.abc import MutableMapping

from . import base

class InMemoryPreferenceStore(base.PreferenceStore):
    """
    an in-memory PreferenceStore implementation
    """

    def __init__(self, data: MutableMapping=None):
        """
        :param dict data:  the initial preferences as a dictionary of per-user dictionaries; if
                           provided, this dictionary is used (and updated) directly.
        """
        if data is None:
            data = {}
        self._db = data

    def get_preference(self, user: str, key: str, default=None):
        return deepcopy(self._db.get(user, {}).get(key, default))

    def set_preference(self, user: str, key: str, value):
        if value is None:
            if key in self._db.get(user, {}):
                del self._db[user][key]
            return
        self._db.setdefault(user, {})[key] = deepcopy(value)
