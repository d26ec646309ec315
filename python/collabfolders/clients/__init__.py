"""
Clients for accessing the remote storage service: the OCS Share API, the WebDAV interface,
and the end-user's remote identity.
"""
from .ocs import OCSShareApi
from .webdav import WebDAVClient
from .identity import IdentityService, OAuth2IdentityService, RemoteIdentity
