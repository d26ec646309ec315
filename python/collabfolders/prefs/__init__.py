"""
Durable per-user preference storage, including the cache of links issued to users.

The following storage backends are available:

:py:class:`~collabfolders.prefs.inmem.InMemoryPreferenceStore`
    an in-memory store, intended for testing
:py:class:`~collabfolders.prefs.fsbased.FSBasedPreferenceStore`
    one JSON file per user under a root directory
:py:class:`~collabfolders.prefs.mongo.MongoPreferenceStore`
    a MongoDB collection (loaded on demand, as it requires ``pymongo``)
"""
from .base import PreferenceStore, LinkCache, LinkPreference, link_key, name_key
from .inmem import InMemoryPreferenceStore
from .fsbased import FSBasedPreferenceStore
