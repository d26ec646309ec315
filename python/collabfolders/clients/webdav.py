"""
This module provides a client class, :py:class:`WebDAVClient`, that performs the WebDAV
operations needed to manage collaborative folders on a Nextcloud instance: creating the
instance and group folders (as the technical identity) and renaming a shared folder within an
end-user's space (as that user).  It leverages the ``webdav3.client`` package to carry out the
standard WebDAV operations.
"""
import logging
from copy import deepcopy
from urllib.parse import urlparse, urlunparse, urljoin
from typing import Mapping

import requests
from webdav3 import client as wd3c
from webdav3.exceptions import WebDavException

from ..config import ConfigurationException
from ..exceptions import *

DEF_TIMEOUT = 30
USER_DAV_PATH = "remote.php/dav/files/{user}/"

def _convert_error(ex: Exception, intent: str, path: str=None, timeout: float=None):
    """
    translate a webdav3 exception into the corresponding remote storage exception
    """
    if isinstance(ex, wd3c.ConnectionException):
        if isinstance(getattr(ex, 'exception', None), requests.Timeout):
            return RemoteTimeout(f"Timed out while trying to {intent}", ep=path, timeout=timeout)
        return RemoteCommError(f"Failed to {intent}: {str(ex)}", ep=path)
    if isinstance(ex, wd3c.NoConnection):
        # webdav3 reports a connect timeout as NoConnection; the requests error is its context
        if isinstance(ex.__cause__ or ex.__context__, requests.Timeout):
            return RemoteTimeout(f"Timed out while trying to {intent}", ep=path, timeout=timeout)
        return RemoteCommError(f"Failed to {intent}: {str(ex)}", ep=path)
    if isinstance(ex, wd3c.NotEnoughSpace):
        return RemoteServerError(507, path, message=f"Failed to {intent}: {str(ex)}")
    if isinstance(ex, (wd3c.RemoteResourceNotFound, wd3c.RemoteParentNotFound)):
        return RemoteResourceNotFound(path, f"Unable to {intent}: {str(ex)}")
    if isinstance(ex, wd3c.ResponseErrorCode):
        if ex.code in (401, 403):
            return RemoteUserUnauthorized(path, f"Not authorized to {intent}: {str(ex)}", code=ex.code)
        if ex.code < 500:
            return RemoteClientError(f"Unable to {intent}: {str(ex)}", ex.code, path)
        return RemoteServerError(ex.code, path, message=f"Failed to {intent}: {str(ex)}")
    return RemoteStorageException(f"Failed to {intent}: {str(ex)}")

class WebDAVClient:
    """
    A client for accessing a Nextcloud WebDAV interface.  It is a wrapper around the
    webdav3.client interface which is available via the ``wdcli`` property.

    The class looks for the following configuration parameters:

    ``service_endpoint``
        _str_ (required).  the WebDAV endpoint URL pointing to the remote collection (directory)
        that should be the root of subsequent accesses (e.g.
        ``https://cloud.example.org/remote.php/dav/files/admin/``).
    ``ca_bundle``
        _str_ (optional).  the path to a CA certificate bundle which should be used to verify
        the WebDAV's site certificate.
    ``timeout``
        _float_ (optional).  the maximum number of seconds to wait for a response (default: 30).
    ``authentication``
        _dict_ (required).  the data required to authenticate to the WebDAV service (see below).

    The ``authentication`` parameter is a dictionary which can contain the following parameters:

    ``user``
        _str_ (optional).  the user name of the identity to authenticate to the WebDAV service as.
    ``pass``
        _str_ (optional).  the password to authenticate with; required if ``user`` is given.
    ``token``
        _str_ (optional).  an OAuth2 bearer token to authenticate with instead of a user name
        and password.

    :param dict config:  the configuration dictionary
    :param Logger  log:  the Logger to use for log messages

    :raises ConfigurationException  if there are missing or inconsistent configuration parameters
    """
    def __init__(self, config: Mapping, log: logging.Logger=None):
        if not log:
            log = logging.getLogger("webdavcli")
        self.log = log
        self.cfg = config

        if not config.get("service_endpoint"):
            raise ConfigurationException("WebDAVClient: Missing required config parameter: "+
                                         "service_endpoint")
        try:
            ep = urlparse(config["service_endpoint"])
        except ValueError as ex:
            raise ConfigurationException("WebDAVClient: config param service_endpoint not a URL")
        if not ep.scheme or not ep.netloc:
            raise ConfigurationException("WebDAVClient: config param service_endpoint not a URL: " +
                                         config["service_endpoint"])

        self.timeout = config.get('timeout', DEF_TIMEOUT)
        self._wdcopts = {
            'webdav_hostname': urlunparse((ep[0], ep[1], '', '', '', '')),
            'webdav_root': ep.path or '/',
            'webdav_timeout': self.timeout
        }
        self._add_auth_opts(config.get('authentication', {}), self._wdcopts)

        self.wdcli = wd3c.Client(self._wdcopts)
        self.wdcli.verify = self.cfg.get('ca_bundle', True)

    def _add_auth_opts(self, authcfg, wd3opts):
        if not authcfg:
            self.log.warning("No authentication parameters provided; assuming none are needed")
            return

        if authcfg.get('token'):
            wd3opts['webdav_token'] = authcfg['token']
        elif authcfg.get('user'):
            if not authcfg.get('pass'):
                raise ConfigurationException("WebDAVClient: missing required config parameter: "
                                             "authentication.pass")
            wd3opts['webdav_login'] = authcfg['user']
            wd3opts['webdav_password'] = authcfg['pass']
        else:
            raise ConfigurationException("WebDAVClient: authentication requires either token or "
                                         "user and pass")

    def is_directory(self, path):
        """Check if arg path leads to a directory, returns bool accordingly"""
        try:
            return self.wdcli.is_dir(path)
        except wd3c.RemoteResourceNotFound:
            return False
        except WebDavException as ex:
            raise _convert_error(ex, "check directory", path, self.timeout) from ex

    def exists(self, path):
        """
        return True if the given path exists on the server
        """
        # Note wdcli.check() will return False if any error code > 400 is returned (not ideal)
        try:
            return self.wdcli.check(path)
        except WebDavException as ex:
            raise _convert_error(ex, "check existence", path, self.timeout) from ex

    def ensure_directory(self, path):
        """
        Ensure that a directory with given a path exists, creating it if necessary
        """
        if self.is_directory(path):
            return
        try:
            self.wdcli.mkdir(path)
        except WebDavException as ex:
            raise _convert_error(ex, "create directory", path, self.timeout) from ex

    def move(self, frompath, topath, overwrite=False):
        """
        move (i.e. rename) a file or folder.  Unless ``overwrite`` is True, the move fails if
        something already exists at ``topath``.
        """
        try:
            self.wdcli.move(frompath, topath, overwrite)
        except WebDavException as ex:
            raise _convert_error(ex, "move resource", frompath, self.timeout) from ex
        self.log.debug("Moved %s to %s", frompath, topath)

def user_webdav_config(config: Mapping, base_url: str, user_id: str, token: str) -> Mapping:
    """
    return a copy of a WebDAV client configuration adjusted to access a given user's space
    with the user's bearer token.
    """
    out = deepcopy(config)
    template = out.pop('user_endpoint_template', None)
    if template:
        out['service_endpoint'] = template.format(user=user_id)
    else:
        if not base_url:
            raise ConfigurationException("Missing config parameter: nextcloud_base_url")
        if not base_url.endswith('/'):
            base_url += '/'
        out['service_endpoint'] = urljoin(base_url, USER_DAV_PATH.format(user=user_id))
    out['authentication'] = {'token': token}
    return out
