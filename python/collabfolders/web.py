"""
A WSGI application serving the collaborative folder activity page, implemented with Flask.

The :py:func:`create_app` function instantiates the WSGI application that can be provided
to a WSGI server (e.g. uWSGI).  This function requires a configuration dictionary and
looks for the following configuration parameters (in addition to those of
:py:class:`~collabfolders.service.CollabFoldersService`):

``name``
   (str) _optional_.  a name to the flask app; it is also used as the root name of
   the default logger.

``flask``
   (dict) _required_.  The parameters specific to flask; this includes
   ``secret_key`` and ``debug``.

``endpoint_path``
   (str) _optional_.  the URL path the activity endpoints are mounted under (default: ``/cf1``)

``auth``
   (dict) _optional_.  how users are identified.  Its ``type`` is either ``header`` (the
   default), where a trusted reverse proxy passes the authenticated user's identifier in the
   ``X_REMOTE_USER`` header, or ``none``, where every request is assumed to come from the user
   given by ``assume_user`` (for testing only).  With the ``header`` type, setting
   ``trust_any_client`` to true accepts the header from any client (for testing only).

``allowed_proxies``
   (list) _optional_.  the addresses of the reverse proxies allowed to pass user identities
   via headers.  The ``header`` auth type requires at least one unless
   ``auth.trust_any_client`` is set.

``debug``
   (bool) _optional_.  If True, debugging will be turned on in the Flask infrastructure.

The activity page is available at ``<endpoint_path>/view?id=<instance>``; it responds to GET
and POST requests (only the latter accepts a folder name via the ``chosenName`` field) with
a JSON page description (see :py:mod:`collabfolders.render`).
"""
import logging
from logging import Logger
from functools import wraps
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Mapping
from typing import List

from flask import Flask, request, current_app, Blueprint
from flask_restful import Api, Resource

from .config import ConfigurationException
from .service import CollabFoldersService
from .workflow import PageRequest
from .render import JSONPageRenderer
from .exceptions import *

_true_values = ("1", "true", "yes", "on")

class AuthHandler(ABC):
    """
    an abstract base class for identifying the user making a request
    """

    @abstractmethod
    def authenticate(self):
        """
        return the identifer for the authenticated user if the user successfully authenticated
        """
        raise NotImplementedError()

class DelegatedAuthHandler(AuthHandler):
    """
    An AuthHandler that relies on a reverse proxy service to authenticate the user and to pass
    the user's identifier in a header.
    """

    def __init__(self, allowed_proxies: List[str]=None, header: str="X_REMOTE_USER",
                 trust_any_client: bool=False):
        self.allowed = allowed_proxies or []
        self.header = header
        self.trust_any = trust_any_client

    def authenticate(self):
        if not self.trust_any and request.remote_addr not in self.allowed:
            return None
        return request.headers.get(self.header)

class NoAuthNeededAuthHandler(AuthHandler):
    """
    An AuthHandler that requires no credentials from client and sets a default user
    """

    def __init__(self, assume_user: str):
        self.user = assume_user

    def authenticate(self):
        return self.user

def make_auth_handler(config: Mapping) -> AuthHandler:
    authcfg = config.get('auth', {})
    atype = authcfg.get('type', 'header')
    if atype == 'header':
        trust_any = authcfg.get('trust_any_client', False)
        if not config.get('allowed_proxies') and not trust_any:
            raise ConfigurationException("Config param, allowed_proxies, is required for the "
                                         "header auth type (unless auth.trust_any_client is set)")
        return DelegatedAuthHandler(config.get('allowed_proxies', []),
                                    authcfg.get('header', 'X_REMOTE_USER'), trust_any)
    if atype == 'none':
        if not authcfg.get('assume_user'):
            raise ConfigurationException("Missing required config parameter: auth.assume_user")
        return NoAuthNeededAuthHandler(authcfg['assume_user'])
    raise ConfigurationException("Unsupported auth type: " + str(atype))

def authentication_required(f):
    @wraps(f)
    def wrapper(*args, **kw):
        user = current_app.auth.authenticate()
        if not user:
            return make_error_response("Not authenticated", 401)
        return f(*args, user=user, **kw)
    return wrapper

def create_app(config: Mapping, service: CollabFoldersService=None, log: Logger=None):
    """
    create the Flask application

    :param dict config:  the configuration data for the app
    :param CollabFoldersService service:  the service to use; if not provided, one will be
                                          created from ``config``
    :param Logger log:   the logger to use (optional)
    """
    missing = []
    if 'flask' not in config:
        missing.append("flask")
    if not config.get('flask', {}).get('secret_key') and \
       not config.get('flask', {}).get('SECRET_KEY'):
        missing.append("flask.secret_key")
    if missing:
        raise ConfigurationException("Missing required config parameters: " +
                                     ", ".join(missing))
    if not isinstance(config.get('allowed_proxies', []), list):
        raise ConfigurationException("Config param, allowed_proxies, not a list: " +
                                     str(type(config.get('allowed_proxies'))))

    config = dict(config)
    flaskcfg = dict(config.pop('flask'))
    if config.get('debug'):
        flaskcfg['DEBUG'] = True
    if 'secret_key' in flaskcfg:
        flaskcfg['SECRET_KEY'] = flaskcfg.pop('secret_key')

    app = Flask(__name__)
    app.name = config.get('name', 'collabfolders')
    if not log:
        log = logging.getLogger(app.name)
    app.logger = log
    app.config.update(flaskcfg)

    if not service:
        service = CollabFoldersService(config, log)
    app.service = service
    app.auth = make_auth_handler(config)

    app.register_blueprint(ActivityBlueprint(), url_prefix=config.get('endpoint_path', '/cf1'))

    return app

def make_error_content(message: str, code: int=0, intent: str=None):
    out = OrderedDict([("message", message)])
    if code > 0:
        out['code'] = code
    if intent:
        out['intent'] = intent
    return out

def make_error_response(message: str, code: int, intent: str=None):
    out = make_error_content(message, code, intent)
    return out, code

def server_error(message: str=None, intent: str=None, code: int=500):
    if not message:
        message = "Internal server error"
    return make_error_response(message, code, intent)

def not_found(message: str, intent: str=None, code: int=404):
    return make_error_response(message, code, intent)

def bad_input(message: str, intent: str=None, code: int=400):
    return make_error_response(message, code, intent)

def _flag(params, name):
    return str(params.get(name, "")).lower() in _true_values

class ViewResource(Resource):
    """
    the activity page (``/view?id=[instance]``)
    """

    @authentication_required
    def get(self, user):
        return self._view(user, request.args)

    @authentication_required
    def post(self, user):
        """
        submit a folder name (via the ``chosenName`` form or JSON property) for the activity
        """
        params = dict(request.values.items())
        if request.is_json and isinstance(request.get_json(silent=True), Mapping):
            params.update(request.get_json())
        return self._view(user, params, params.get('chosenName'))

    def _view(self, user, params, chosen_name=None):
        iid = params.get('id')
        if not iid:
            return bad_input("Missing required parameter: id", "viewing activity")

        req = PageRequest(iid, _flag(params, 'reset'), _flag(params, 'logout'),
                          _flag(params, 'generate'), chosen_name,
                          f"{request.base_url}?id={iid}")
        renderer = JSONPageRenderer()
        try:
            page = current_app.service.workflow.view(user, req, renderer)

        except AccessDenied as ex:
            return make_error_response(str(ex), 403, "viewing activity")
        except InstanceNotFound as ex:
            return not_found(str(ex), "viewing activity")
        except CollabFoldersException as ex:
            current_app.logger.error(str(ex))
            return server_error(intent="viewing activity")
        except Exception as ex:
            current_app.logger.exception(ex)
            return server_error(intent="viewing activity")

        if renderer.is_redirect:
            return page, 303, {"Location": page['redirect']}
        return page

class TokenResource(Resource):
    """
    the remote identity of the requesting user (``/token``).  The token obtained upon
    completing the OAuth2 authorization flow is deposited here.
    """

    @authentication_required
    def get(self, user):
        """
        report whether the user holds a remote identity
        """
        ident = current_app.service.identity.acquire_identity(user)
        if not ident:
            return not_found("No remote identity held for user", "retrieving remote identity")
        return {"user_id": ident.user_id}

    @authentication_required
    def put(self, user):
        token = request.get_json(silent=True)
        if not isinstance(token, Mapping):
            return bad_input("Token is not a JSON object", "saving remote identity")
        try:
            current_app.service.identity.store_token(user, token)
        except ValueError as ex:
            return bad_input(str(ex), "saving remote identity")
        except PreferenceStoreUnavailable as ex:
            current_app.logger.error(str(ex))
            return server_error(intent="saving remote identity")
        return {"user_id": token[current_app.service.identity.user_id_property]}, 201

    @authentication_required
    def delete(self, user):
        try:
            current_app.service.identity.logout(user)
        except PreferenceStoreUnavailable as ex:
            current_app.logger.error(str(ex))
            return server_error(intent="removing remote identity")
        return "", 200

def ActivityBlueprint():
    bp = Blueprint("activity", __name__)
    api = Api(bp)
    api.add_resource(ViewResource, '/view')
    api.add_resource(TokenResource, '/token')
    return bp
