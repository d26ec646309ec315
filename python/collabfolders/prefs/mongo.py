"""
An implementation of the preference store that uses a MongoDB database as its backend store
"""
import re, logging
from logging import Logger

from pymongo import MongoClient, ASCENDING
from pymongo.errors import PyMongoError

from . import base
from ..exceptions import PreferenceStoreUnavailable

_dburl_re = re.compile(r"^mongodb://(\w+(:\S+)?@)?\w+(\.\w+)*(:\d+)?/\w+(\?\w.*)?$")

PREFS_COLL = "user_preferences"

class MongoPreferenceStore(base.PreferenceStore):
    """
    a PreferenceStore that keeps one document per (user, key) pair in a MongoDB collection
    """

    def __init__(self, dburl: str, collname: str=PREFS_COLL, log: Logger=None):
        """
        :param str   dburl:  the URL of MongoDB database in the form,
                             'mongodb://USER:PW@HOST:PORT/DBNAME'
        :param str collname: the name of the collection to store preferences in
        """
        if not _dburl_re.match(dburl):
            raise ValueError("MongoPreferenceStore: Bad dburl format (need "
                             "'mongodb://[USER:PASS@]HOST[:PORT]/DBNAME'): " + dburl)
        self._dburl = dburl
        self._collname = collname
        self._mngocli = None
        self._native = None
        if not log:
            log = logging.getLogger("collabfolders.prefs")
        self.log = log

    def connect(self):
        """
        establish a connection to the database
        """
        self._mngocli = MongoClient(self._dburl)
        self._native = self._mngocli.get_database()
        self._native[self._collname].create_index([("user", ASCENDING), ("key", ASCENDING)],
                                                  unique=True)

    def disconnect(self):
        """
        close the connection to the database.
        """
        if self._mngocli:
            try:
                self._mngocli.close()
            finally:
                self._mngocli = None
                self._native = None

    @property
    def native(self):
        """
        the native pymongo database object.  Accessing this property will implicitly connect
        this client to the underlying MongoDB database.
        """
        if self._native is None:
            self.connect()
        return self._native

    def get_preference(self, user: str, key: str, default=None):
        try:
            doc = self.native[self._collname].find_one({"user": str(user), "key": key})
        except PyMongoError as ex:
            self.log.error("Failed to read preference for %s: %s", user, str(ex))
            raise PreferenceStoreUnavailable(cause=ex) from ex
        if not doc:
            return default
        return doc.get("value", default)

    def set_preference(self, user: str, key: str, value):
        filt = {"user": str(user), "key": key}
        try:
            coll = self.native[self._collname]
            if value is None:
                coll.delete_one(filt)
            else:
                coll.update_one(filt, {"$set": {"value": value}}, upsert=True)
        except PyMongoError as ex:
            self.log.error("Failed to save preference for %s: %s", user, str(ex))
            raise PreferenceStoreUnavailable(cause=ex) from ex
