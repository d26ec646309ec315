"""
An implementation of the preference store that keeps each user's preferences in a JSON file
under a root directory.
"""
import json, logging
from collections import OrderedDict
from logging import Logger
from pathlib import Path
from typing import Union
from urllib.parse import quote

from . import base
from ..config import ConfigurationException
from ..exceptions import PreferenceStoreUnavailable
from ..utils import read_json, LockedFile

class FSBasedPreferenceStore(base.PreferenceStore):
    """
    a PreferenceStore that saves each user's preferences into ``<root>/<user>.json``, where
    ``<user>`` is the percent-encoded user identifier.  Access to each file is serialized with
    :py:class:`~collabfolders.utils.LockedFile`.
    """

    def __init__(self, rootdir: Union[str, Path], log: Logger=None):
        if isinstance(rootdir, str):
            rootdir = Path(rootdir)
        if not rootdir.is_dir():
            raise ConfigurationException(f"{rootdir}: preference root directory does not exist")
        self._root = rootdir
        if not log:
            log = logging.getLogger("collabfolders.prefs")
        self.log = log

    def _user_file(self, user: str) -> Path:
        return self._root / (quote(str(user), safe='@') + ".json")

    def get_preference(self, user: str, key: str, default=None):
        ufile = self._user_file(user)
        if not ufile.exists():
            return default
        try:
            return read_json(ufile, self.log).get(key, default)
        except (OSError, ValueError) as ex:
            self.log.error("Failed to read preferences for %s: %s", user, str(ex))
            raise PreferenceStoreUnavailable(cause=ex) from ex

    def set_preference(self, user: str, key: str, value):
        try:
            # the exclusive lock is held across the read-modify-write
            with LockedFile(self._user_file(user), 'a+') as fd:
                fd.seek(0)
                content = fd.read()
                prefs = json.loads(content, object_pairs_hook=OrderedDict) if content.strip() else {}
                if value is None:
                    prefs.pop(key, None)
                else:
                    prefs[key] = value
                fd.truncate(0)
                json.dump(prefs, fd, indent=4, separators=(',', ': '))
        except (OSError, ValueError) as ex:
            self.log.error("Failed to save preference for %s: %s", user, str(ex))
            raise PreferenceStoreUnavailable(cause=ex) from ex
