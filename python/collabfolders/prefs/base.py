"""
The base interface for per-user preference storage and the link cache built on top of it.
"""
import logging
from abc import ABC, abstractmethod
from collections import namedtuple
from logging import Logger
from typing import Optional

LINK_PREF_PREFIX = "cf_link"

class PreferenceStore(ABC):
    """
    a durable store of string-keyed preference values scoped per user.  Implementations must
    provide read-after-write consistency for a given user.  Failures to access the underlying
    storage are raised as :py:class:`~collabfolders.exceptions.PreferenceStoreUnavailable`.
    """

    @abstractmethod
    def get_preference(self, user: str, key: str, default=None):
        """
        return the value of the preference with the given key for the user, or ``default``
        if it is not set.
        """
        raise NotImplementedError()

    @abstractmethod
    def set_preference(self, user: str, key: str, value):
        """
        set the value of a user's preference.  A value of None removes the preference.
        """
        raise NotImplementedError()

    def unset_preference(self, user: str, key: str):
        """
        remove a preference for a user; nothing happens if it is not set.
        """
        self.set_preference(user, key, None)

class LinkPreference(namedtuple("LinkPreference", "link name")):
    """
    the cached link to an instance's folder and the folder name the user chose for it.
    Either may be None.
    """
    __slots__ = ()

def link_key(instance_id) -> str:
    return f"{LINK_PREF_PREFIX} {instance_id}"

def name_key(instance_id) -> str:
    return f"{LINK_PREF_PREFIX} {instance_id} name"

class LinkCache:
    """
    a per-user, per-instance cache of the link issued to a user and the folder name they chose.
    The link and the name are stored as two independent preference values.
    """

    def __init__(self, store: PreferenceStore, log: Logger=None):
        self.store = store
        if not log:
            log = logging.getLogger("collabfolders.prefs")
        self.log = log

    def get(self, user: str, instance_id) -> Optional[LinkPreference]:
        """
        return the cached link and chosen name, or None if neither has been set
        """
        link = self.store.get_preference(user, link_key(instance_id))
        name = self.store.get_preference(user, name_key(instance_id))
        if link is None and name is None:
            return None
        return LinkPreference(link, name)

    def get_link(self, user: str, instance_id) -> Optional[str]:
        return self.store.get_preference(user, link_key(instance_id))

    def get_name(self, user: str, instance_id) -> Optional[str]:
        return self.store.get_preference(user, name_key(instance_id))

    def put(self, user: str, instance_id, link: str=None, name: str=None):
        """
        save a link and/or a chosen name.  A value given as None leaves the currently stored
        value unchanged.
        """
        if link is not None:
            self.store.set_preference(user, link_key(instance_id), link)
            self.log.debug("Cached link for user %s on instance %s", user, instance_id)
        if name is not None:
            self.store.set_preference(user, name_key(instance_id), name)

    def reset(self, user: str, instance_id):
        """
        forget the folder name chosen by the user.  A previously generated link is retained.
        """
        self.store.unset_preference(user, name_key(instance_id))
