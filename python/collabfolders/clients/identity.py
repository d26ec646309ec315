"""
Access to an end-user's identity on the remote storage service.

The remote storage service grants access via OAuth2: once a user has authorized the
application, an access token (which names the user's remote account) is held on the user's
behalf.  This module only consumes the result of that authorization; the exchange of an
authorization code for a token happens outside of it and is handed in via
:py:meth:`OAuth2IdentityService.store_token`.
"""
import logging
from abc import ABC, abstractmethod
from collections import namedtuple
from collections.abc import Mapping
from logging import Logger
from typing import Optional
from urllib.parse import urlencode

from ..config import ConfigurationException
from ..prefs.base import PreferenceStore

TOKEN_PREF_KEY = "cf_oauth2_token"

class RemoteIdentity(namedtuple("RemoteIdentity", "user_id access_token")):
    """
    the remote storage account an end-user acts as, along with the token that proves it
    """
    __slots__ = ()

class IdentityService(ABC):
    """
    the interface to the remote identity of end-users
    """

    @abstractmethod
    def acquire_identity(self, user: str) -> Optional[RemoteIdentity]:
        """
        return the remote identity held for the given user or None if the user has not
        logged into the remote storage service
        """
        raise NotImplementedError()

    @abstractmethod
    def login_url(self, user: str, return_url: str=None) -> str:
        """
        return the URL a user should visit to authorize access to their remote account
        """
        raise NotImplementedError()

    @abstractmethod
    def logout(self, user: str):
        """
        forget the remote identity held for the given user
        """
        raise NotImplementedError()

    def is_logged_in(self, user: str) -> bool:
        return self.acquire_identity(user) is not None

class OAuth2IdentityService(IdentityService):
    """
    an IdentityService that keeps each user's OAuth2 token in a :py:class:`PreferenceStore`.

    This class supports the following configuration parameters:

    ``authorize_url``
        (str) _required_.  the OAuth2 authorization endpoint of the remote storage service
    ``client_id``
        (str) _required_.  the OAuth2 client identifier registered for this application
    ``redirect_url``
        (str) _optional_.  the URL the service should send users back to after authorizing;
        if not set, the ``return_url`` given to :py:meth:`login_url` is used.
    ``user_id_property``
        (str) _optional_.  the name of the token property that holds the remote user id
        (default: ``user_id``, as returned by Nextcloud and ownCloud)
    """

    def __init__(self, config: Mapping, store: PreferenceStore, log: Logger=None):
        if not log:
            log = logging.getLogger("collabfolders.identity")
        self.log = log
        self.cfg = config
        self.store = store

        missing = [p for p in "authorize_url client_id".split() if not config.get(p)]
        if missing:
            raise ConfigurationException("OAuth2IdentityService: Missing required config "
                                         "parameters: " + ", ".join(missing))
        self.user_id_property = config.get('user_id_property', 'user_id')

    def acquire_identity(self, user: str) -> Optional[RemoteIdentity]:
        token = self.store.get_preference(user, TOKEN_PREF_KEY)
        if not token or not token.get('access_token') or not token.get(self.user_id_property):
            return None
        return RemoteIdentity(token[self.user_id_property], token['access_token'])

    def store_token(self, user: str, token: Mapping):
        """
        save the token response obtained for a user upon completion of the authorization flow
        """
        if not token.get('access_token') or not token.get(self.user_id_property):
            raise ValueError(f"token is missing access_token or {self.user_id_property}")
        self.store.set_preference(user, TOKEN_PREF_KEY, dict(token))
        self.log.info("Stored remote identity %s for user %s", token[self.user_id_property], user)

    def login_url(self, user: str, return_url: str=None) -> str:
        params = [
            ('response_type', 'code'),
            ('client_id', self.cfg['client_id'])
        ]
        redirect = self.cfg.get('redirect_url') or return_url
        if redirect:
            params.append(('redirect_uri', redirect))
        sep = '&' if '?' in self.cfg['authorize_url'] else '?'
        return self.cfg['authorize_url'] + sep + urlencode(params)

    def logout(self, user: str):
        self.store.unset_preference(user, TOKEN_PREF_KEY)
        self.log.info("Removed remote identity for user %s", user)
