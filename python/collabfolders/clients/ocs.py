"""
This module provides a client class, :py:class:`OCSShareApi`, for creating shares through the
OCS Share API of a Nextcloud (or ownCloud) instance.  The client acts as the technical
identity that owns the activity folders; it is used to share a folder with an end-user's
remote account.
"""
import os
import logging
from collections.abc import Mapping

import requests
import OpenSSL

from ..config import ConfigurationException
from ..exceptions import *

SHARES_PATH = "ocs/v1.php/apps/files_sharing/api/v1/shares"

SHARE_TYPE_USER = 0

PERM_READ   = 1
PERM_UPDATE = 2
PERM_CREATE = 4
PERM_DELETE = 8
PERM_SHARE  = 16
PERM_ALL    = 31

# OCS v1 reports 100 on success; v2 reports 200
_ocs_ok_codes = (100, 200)

DEF_TIMEOUT = 30

class OCSShareApi:
    """
    a client for the OCS Share API.

    This class supports the following configuration parameters:

    ``service_endpoint``
        (str) _required_.  the base URL of the Nextcloud instance (under which ``ocs/`` is found).
    ``ca_bundle``
        (str) _optional_.  the path to a CA certificate bundle that should be used to validate the
        remote server's site certificate.  If not provided, the CAs installed into the OS will be used.
    ``site_cert_verify``
        (bool) _optional_.  if False, the server's site certificate will not be verified.
    ``timeout``
        (float) _optional_.  the maximum number of seconds to wait for a response (default: 30).
    ``authentication``
        (dict) _optional_. the data required for authenticating to the service as the technical
        identity.  See below for sub-parameter details.

    The ``authentication`` object supports the following sub-parameters:

    ``client_cert_path``
        (str) _optional_.  a file path to the client x509 certificate (in PEM format) that should be
        used to connect to the service with.
    ``client_key_path``
        (str) _optional_.  a file path to the private key (in PEM format) that matches the client x509
        certificate given in ``client_cert_path``.
    ``user``
        (str) _optional_.  the technical user identity.  If ``client_cert_path`` is also given, it
        must match the common name (CN) for that certificate.
    ``pass``
        (str) _optional_.  the password (or app password) for ``user``; used if ``client_cert_path``
        is not provided.
    """

    def __init__(self, config: Mapping, log: logging.Logger=None):
        """
        initialize the client

        :param dict config:  the configuration parameters for this client; see class documentation for
                             the parameter descriptions.
        :param Logger log:   the Logger object to use for messages from this client.  If not provided,
                             a default logger with the name "ocsclient" will be used.
        """
        if not log:
            log = logging.getLogger("ocsclient")
        self.log = log

        self.base_url = config.get("service_endpoint")
        if not self.base_url:
            raise ConfigurationException("OCSShareApi: Missing required config parameter: service_endpoint")
        if not self.base_url.endswith('/'):
            self.base_url += '/'
        self.authkw = self._prep_auth(config.get("authentication") or {})

        if not config.get('site_cert_verify', True):
            self.authkw['verify'] = False
        elif config.get("ca_bundle"):
            self.authkw['verify'] = config['ca_bundle']

        self.timeout = config.get('timeout', DEF_TIMEOUT)

    def _prep_auth(self, authcfg):
        if not authcfg:
            self.log.warning("No authentication parameters provided; assuming none are needed")

        out = {}
        if authcfg.get("client_cert_path"):
            if not os.path.isfile(authcfg["client_cert_path"]):
                raise ConfigurationException(f"{authcfg['client_cert_path']}: client cert file not found")
            if not authcfg.get("client_key_path"):
                raise ConfigurationException("OCSShareApi: missing required config parameter: "
                                             "authentication.client_key_path")
            if not os.path.isfile(authcfg["client_key_path"]):
                raise ConfigurationException(f"{authcfg['client_key_path']}: client key file not found")
            out['cert'] = (authcfg["client_cert_path"], authcfg["client_key_path"])

            if authcfg.get("user"):
                try:
                    certuser = self._get_cert_cn(authcfg['client_cert_path'])
                except Exception as ex:
                    raise ConfigurationException("%s: trouble reading client cert: %s" %
                                                 (authcfg['client_cert_path'], str(ex))) from ex

                if authcfg['user'] != certuser:
                    raise ConfigurationException("%s: CN does not match %s" %
                                                 (authcfg['client_cert_path'], authcfg['user']))

        elif authcfg.get("user"):
            if not authcfg.get("pass"):
                raise ConfigurationException("OCSShareApi: missing required config parameter: "
                                             "authentication.pass")
            out['auth'] = (authcfg['user'], authcfg['pass'])

        return out

    def _get_cert_cn(self, cert_path):
        """ Extract CN (Common Name) from the client certificate """
        with open(cert_path, 'rb') as cert_file:
            cert_data = cert_file.read()

        cert = OpenSSL.crypto.load_certificate(OpenSSL.crypto.FILETYPE_PEM, cert_data)
        return cert.get_subject().CN

    def _handle_request(self, method, url, **kwargs):
        """ Generic request handler. """

        full_url = f"{self.base_url}{url}"
        kw = dict(kwargs)
        kw.update(self.authkw)
        kw.setdefault('headers', {})['OCS-APIRequest'] = 'true'
        kw.setdefault('timeout', self.timeout)

        try:
            response = requests.request(method, full_url, **kw)
        except requests.Timeout as ex:
            raise RemoteTimeout(ep=full_url, timeout=kw['timeout']) from ex
        except requests.RequestException as ex:
            raise RemoteCommError(str(ex), full_url) from ex

        err_msg = None
        if response.status_code >= 400 and response.text:
            try:
                err_msg = response.json().get('ocs', {}).get('meta', {}).get('message')
            except (ValueError, AttributeError):
                pass

        if response.status_code >= 500:
            if err_msg:
                err_msg = "Remote Storage Server Error: "+err_msg
            raise RemoteServerError(response.status_code, url, response.text, err_msg)
        elif response.status_code == 404:
            raise RemoteResourceNotFound(full_url, resptext=err_msg)
        elif response.status_code in (401, 403):
            raise RemoteUserUnauthorized(url, err_msg, code=response.status_code)
        elif response.status_code >= 400:
            raise RemoteClientError(err_msg, response.status_code, url)
        elif response.status_code < 200 or response.status_code >= 300:
            if not err_msg:
                err_msg = response.reason
            raise UnexpectedRemoteResponse("Unexpected response (%d): %s" %
                                           (response.status_code, err_msg), url)

        return response

    def _get_ocs_data(self, method, url, **kwargs):
        """
        make an OCS request and return the ``data`` part of the response.  OCS may report a
        failure in its ``meta`` block even when the HTTP status is 200.
        """
        params = dict(kwargs.pop('params', {}))
        params['format'] = 'json'
        response = self._handle_request(method, url, params=params, **kwargs)

        try:
            ocs = response.json()['ocs']
            meta = ocs['meta']
        except (ValueError, KeyError, TypeError) as ex:
            raise UnexpectedRemoteResponse("Remote storage response could not be decoded as "
                                           "an OCS response: " + str(ex), url, response.text) from ex

        code = meta.get('statuscode')
        if code not in _ocs_ok_codes:
            msg = meta.get('message') or meta.get('status') or "OCS request failed"
            if code == 404:
                raise RemoteResourceNotFound(url, msg, code=code)
            if code in (401, 403, 997):
                raise RemoteUserUnauthorized(url, msg, code=code)
            raise RemoteClientError(msg, code or 0, url)

        return ocs.get('data')

    def test(self):
        """ Test the API connection by retrieving the server capabilities. """
        return self._handle_request('GET', 'ocs/v1.php/cloud/capabilities', params={'format': 'json'})

    def create_share(self, path: str, share_with: str, permissions: int=PERM_ALL):
        """
        share the folder at the given path (relative to the technical identity's root) with
        a remote user.

        :return:  the share description returned by the service; its ``id`` property
                  identifies the share.
        :rtype:   dict
        """
        data = {
            'path': path,
            'shareType': SHARE_TYPE_USER,
            'shareWith': share_with,
            'permissions': permissions
        }
        out = self._get_ocs_data('POST', SHARES_PATH, data=data)
        self.log.debug("Shared %s with %s", path, share_with)
        return out or {}

    def get_shares(self, path: str):
        """ return the list of shares that exist for the given path """
        return self._get_ocs_data('GET', SHARES_PATH, params={'path': path}) or []

    def delete_share(self, share_id):
        """ remove the share with the given identifier """
        return self._get_ocs_data('DELETE', f"{SHARES_PATH}/{share_id}")
