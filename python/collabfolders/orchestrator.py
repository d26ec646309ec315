"""
The two-step remote operation that gives a user access to an activity folder: the technical
identity shares the folder with the user's remote account, and then the shared folder is
renamed (as the user) to the name the user chose for it.

The two steps are not atomic.  Rather than raising exceptions, :py:meth:`ShareOrchestrator.provision`
returns one of three outcome types (:py:class:`Shared`, :py:class:`ShareFailed`, or
:py:class:`RenameFailed`) so that the case of a share that exists remotely under its original
name must be handled explicitly by the caller.
"""
import logging
from collections import namedtuple
from logging import Logger
from typing import Callable, Union
from urllib.parse import quote

from .clients.ocs import OCSShareApi, PERM_ALL
from .clients.webdav import WebDAVClient
from .clients.identity import RemoteIdentity
from .exceptions import RemoteStorageException, RemoteTimeout
from .config import ConfigurationException

TIMEOUT_TAG = "timeout"

class ShareResult(namedtuple("ShareResult", "succeeded remote_id detail")):
    """
    the result of the create-share step
    """
    __slots__ = ()

class Shared(namedtuple("Shared", "link remote_id")):
    """
    both remote steps succeeded; ``link`` is the URL the user can open the folder with
    """
    __slots__ = ()
    succeeded = True

class ShareFailed(namedtuple("ShareFailed", "detail timed_out")):
    """
    the folder could not be shared with the user; no rename was attempted
    """
    __slots__ = ()
    succeeded = False
    kind = "shared"

class RenameFailed(namedtuple("RenameFailed", "detail timed_out remote_id")):
    """
    the folder was shared but could not be renamed.  The share is left in place.
    """
    __slots__ = ()
    succeeded = False
    kind = "renamed"

ProvisionOutcome = Union[Shared, ShareFailed, RenameFailed]

def _failure_detail(ex: Exception):
    if isinstance(ex, RemoteTimeout):
        return f"{TIMEOUT_TAG}: {str(ex)}", True
    return str(ex), False

class ShareOrchestrator:
    """
    performs the create-share and rename steps against the remote storage service.  Each step
    is attempted exactly once per call to :py:meth:`provision`.
    """

    def __init__(self, share_api: OCSShareApi, user_webdav_factory: Callable[[RemoteIdentity], WebDAVClient],
                 files_url: str, permissions: int=PERM_ALL, log: Logger=None):
        """
        :param OCSShareApi share_api:  the client used (as the technical identity) to create shares
        :param user_webdav_factory:    a function that returns a WebDAVClient operating within
                                       the space of (and authenticated as) a given RemoteIdentity
        :param str files_url:          the base URL of the storage service's browser interface
                                       for folders (e.g. ``https://cloud.example.org/apps/files/``)
        :param int permissions:        the permissions to grant with each share
        """
        self.share_api = share_api
        self.user_webdav_factory = user_webdav_factory
        self.files_url = files_url
        self.permissions = permissions
        if not log:
            log = logging.getLogger("collabfolders.orchestrator")
        self.log = log

    def create_share(self, share_path: str, remote_user_id: str) -> ShareResult:
        """
        share the folder at ``share_path`` with the given remote user
        """
        try:
            data = self.share_api.create_share(share_path, remote_user_id, self.permissions)
        except RemoteStorageException as ex:
            detail, _ = _failure_detail(ex)
            return ShareResult(False, None, detail)
        return ShareResult(True, data.get('id'), None)

    def link_for(self, name: str) -> str:
        """
        return the browser URL for a folder in the root of a user's space
        """
        return self.files_url + "?dir=" + quote("/" + name)

    def provision(self, share_path: str, final_path: str, instance_id, identity: RemoteIdentity,
                  name: str) -> ProvisionOutcome:
        """
        share a folder with a user and rename it within the user's space.

        :param str share_path:  the folder path, relative to the technical identity, to share
        :param str final_path:  the path at which the shared folder appears in the user's space
        :param instance_id:     the identifier of the activity instance (for logging)
        :param RemoteIdentity identity:  the remote identity of the user to share with
        :param str name:        the name the user chose for the folder
        """
        res = self.create_share(share_path, identity.user_id)
        if not res.succeeded:
            self.log.warning("Failed to share %s with %s (instance %s): %s",
                             share_path, identity.user_id, instance_id, res.detail)
            return ShareFailed(res.detail, res.detail.startswith(TIMEOUT_TAG))

        target = "/" + name
        if target != final_path:
            try:
                self.user_webdav_factory(identity).move(final_path, target)
            except (RemoteStorageException, ConfigurationException) as ex:
                # a client that cannot be built for the user counts as a failed rename
                detail, timed_out = _failure_detail(ex)
                self.log.warning("Shared %s with %s, but failed to rename it to %s: %s",
                                 share_path, identity.user_id, target, detail)
                return RenameFailed(detail, timed_out, res.remote_id)

        self.log.info("Provisioned folder %s for %s as %s", share_path, identity.user_id, target)
        return Shared(self.link_for(name), res.remote_id)
