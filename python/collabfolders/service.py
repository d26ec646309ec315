"""
Assembly of the collaborative folders service from its configuration.

The :py:class:`CollabFoldersService` class constructs the remote storage clients, the
preference store, the task queue, and the learning platform interfaces, and combines them
into a :py:class:`~collabfolders.workflow.ProvisioningWorkflow` for serving activity pages and
a :py:class:`~collabfolders.provisioning.FolderProvisioner` for executing queued
folder-creation tasks.
"""
import logging
from logging import Logger
from copy import deepcopy
from collections.abc import Mapping
from urllib.parse import urljoin

from .clients import OCSShareApi, WebDAVClient, OAuth2IdentityService, RemoteIdentity
from .clients.ocs import PERM_ALL
from .clients.webdav import user_webdav_config
from .config import merge_config, ConfigurationException
from .orchestrator import ShareOrchestrator
from .platform import InMemoryPlatform, LoggingEventSink, EventSink, ActivityInstance
from .prefs import PreferenceStore, LinkCache, InMemoryPreferenceStore, FSBasedPreferenceStore
from .provisioning import (FolderProvisioner, submit_folder_creation, run_pending,
                           DEF_STALE_AFTER)
from .tasks import TaskQueue, InMemoryTaskQueue, FSBasedTaskQueue, ProvisioningStatusTracker
from .workflow import ProvisioningWorkflow

class CollabFoldersService:
    """
    the collaborative folders service, built from configuration.

    This class supports the following configuration parameters:

    ``nextcloud_base_url``
        (str) _optional_.  the base URL of the Nextcloud instance.  If not provided, the ``ocs``
        and ``webdav`` parameters must each include a ``service_endpoint`` and
        ``nextcloud_files_url`` must be given.
    ``nextcloud_files_url``
        (str) _optional_.  the URL of the Nextcloud browser interface for files; links given to
        users point here.  Default: ``<nextcloud_base_url>apps/files/``.
    ``admin_user``
        (str) _required_.  the technical Nextcloud identity that owns the activity folders
    ``authentication``
        (dict) _optional_.  authentication parameters for the technical identity, shared by
        the ``ocs`` and ``webdav`` clients when they do not provide their own.
    ``ocs``
        (dict) _optional_.  the configuration for the OCS Share API client
        (see :py:class:`~collabfolders.clients.ocs.OCSShareApi`)
    ``webdav``
        (dict) _optional_.  the configuration for the WebDAV client
        (see :py:class:`~collabfolders.clients.webdav.WebDAVClient`).  The
        ``user_endpoint_template`` sub-parameter may give the WebDAV URL of a user's space with
        ``{user}`` standing in for the remote user id.
    ``oauth2``
        (dict) _required_.  the configuration for the end-users' remote identities
        (see :py:class:`~collabfolders.clients.identity.OAuth2IdentityService`)
    ``timeout``
        (float) _optional_.  the default number of seconds to wait for a remote response
    ``ca_bundle``
        (str) _optional_.  a CA certificate bundle for verifying the Nextcloud site certificate
    ``share_permissions``
        (int) _optional_.  the permissions granted with each share (default: 31, all)
    ``preferences``
        (dict) _optional_.  the preference store; its ``type`` is one of ``inmem`` (default),
        ``fsbased`` (requiring ``db_root_dir``), or ``mongo`` (requiring ``db_url``)
    ``task_queue``
        (dict) _optional_.  the folder-creation task queue; its ``type`` is one of ``inmem``
        (default) or ``fsbased`` (requiring ``queue_dir``).  Its ``stale_after`` sets the age
        in seconds after which a task left running is run again.
    ``platform``
        (dict) _optional_.  the data for an :py:class:`~collabfolders.platform.InMemoryPlatform`
    """

    def __init__(self, config: Mapping, log: Logger=None, share_api: OCSShareApi=None,
                 wdcli: WebDAVClient=None, prefs: PreferenceStore=None, queue: TaskQueue=None,
                 platform=None, events: EventSink=None):
        if not log:
            log = logging.getLogger("collabfolders")
        self.log = log
        self.cfg = deepcopy(config)

        self._ncbase = self.cfg.get('nextcloud_base_url')
        if self._ncbase and not self._ncbase.endswith('/'):
            self._ncbase += '/'
        self._adminuser = self.cfg.get('admin_user')
        if not self._adminuser:
            raise ConfigurationException("CollabFoldersService: Missing config parameter: admin_user")

        self._filesurl = self.cfg.get('nextcloud_files_url')
        if not self._filesurl:
            if not self._ncbase:
                raise ConfigurationException("CollabFoldersService: Missing config parameter: "+
                                             "nextcloud_files_url (or nextcloud_base_url)")
            self._filesurl = urljoin(self._ncbase, "apps/files/")

        if not self._ncbase and not self.cfg.get('webdav', {}).get('user_endpoint_template'):
            raise ConfigurationException("CollabFoldersService: Missing config parameter: "+
                                         "webdav.user_endpoint_template (or nextcloud_base_url)")

        if not share_api:
            share_api = self.make_share_api()
        self.share_api = share_api
        if not wdcli:
            wdcli = self.make_webdav_client()
        self.wdcli = wdcli
        if not prefs:
            prefs = self.make_preference_store()
        self.prefs = prefs
        if not queue:
            queue = self.make_task_queue()
        self.queue = queue
        if not platform:
            platform = InMemoryPlatform(self.cfg.get('platform', {}))
        self.platform = platform
        if not events:
            events = LoggingEventSink(self.log.getChild('events'))
        self.events = events

        self.identity = OAuth2IdentityService(self.cfg.get('oauth2', {}), self.prefs,
                                              self.log.getChild('identity'))
        self.provisioner = FolderProvisioner(self.wdcli, self.log.getChild('provisioning'))
        self.workflow = self.make_workflow()

    def _client_config(self, name: str, _override=None):
        cfg = deepcopy(self.cfg.get(name, {}))
        if _override:
            cfg = merge_config(_override, cfg)
        if not cfg.get('ca_bundle') and self.cfg.get('ca_bundle'):
            cfg['ca_bundle'] = self.cfg['ca_bundle']
        if 'timeout' not in cfg and 'timeout' in self.cfg:
            cfg['timeout'] = self.cfg['timeout']
        if not cfg.get('authentication'):
            cfg['authentication'] = deepcopy(self.cfg.get('authentication', {}))
        return cfg

    def make_share_api(self, _override=None) -> OCSShareApi:
        """
        create the OCS Share API client used by the technical identity
        """
        cfg = self._client_config('ocs', _override)
        if not cfg.get('service_endpoint'):
            if not self._ncbase:
                raise ConfigurationException("Missing config parameter: ocs.service_endpoint")
            cfg['service_endpoint'] = self._ncbase
        return OCSShareApi(cfg, self.log.getChild('ocs'))

    def make_webdav_client(self, _override=None) -> WebDAVClient:
        """
        create the WebDAV client operating in the technical identity's space
        """
        cfg = self._client_config('webdav', _override)
        cfg.pop('user_endpoint_template', None)
        if not cfg.get('service_endpoint'):
            if not self._ncbase:
                raise ConfigurationException("Missing config parameter: webdav.service_endpoint")
            cfg['service_endpoint'] = urljoin(self._ncbase, f"remote.php/dav/files/{self._adminuser}/")
        return WebDAVClient(cfg, self.log.getChild('webdav'))

    def make_user_webdav_client(self, identity: RemoteIdentity) -> WebDAVClient:
        """
        create a WebDAV client operating in the space of, and authenticated as, the given
        remote identity
        """
        cfg = self._client_config('webdav')
        cfg = user_webdav_config(cfg, self._ncbase, identity.user_id, identity.access_token)
        return WebDAVClient(cfg, self.log.getChild('webdav'))

    def make_preference_store(self) -> PreferenceStore:
        cfg = self.cfg.get('preferences', {})
        stype = cfg.get('type', 'inmem')
        if stype == 'inmem':
            return InMemoryPreferenceStore()
        if stype == 'fsbased':
            if not cfg.get('db_root_dir'):
                raise ConfigurationException("Missing config parameter: preferences.db_root_dir")
            return FSBasedPreferenceStore(cfg['db_root_dir'], self.log.getChild('prefs'))
        if stype == 'mongo':
            if not cfg.get('db_url'):
                raise ConfigurationException("Missing config parameter: preferences.db_url")
            from .prefs.mongo import MongoPreferenceStore
            return MongoPreferenceStore(cfg['db_url'], log=self.log.getChild('prefs'))
        raise ConfigurationException("Unsupported preferences type: " + str(stype))

    def make_task_queue(self) -> TaskQueue:
        cfg = self.cfg.get('task_queue', {})
        qtype = cfg.get('type', 'inmem')
        if qtype == 'inmem':
            return InMemoryTaskQueue()
        if qtype == 'fsbased':
            if not cfg.get('queue_dir'):
                raise ConfigurationException("Missing config parameter: task_queue.queue_dir")
            return FSBasedTaskQueue(cfg['queue_dir'], self.log.getChild('tasks'))
        raise ConfigurationException("Unsupported task_queue type: " + str(qtype))

    def make_workflow(self) -> ProvisioningWorkflow:
        orch = ShareOrchestrator(self.share_api, self.make_user_webdav_client, self._filesurl,
                                 self.cfg.get('share_permissions', PERM_ALL),
                                 self.log.getChild('orchestrator'))
        tracker = ProvisioningStatusTracker(self.queue, log=self.log.getChild('tasks'))
        return ProvisioningWorkflow(self.platform, self.platform, tracker,
                                    LinkCache(self.prefs, self.log.getChild('prefs')),
                                    self.identity, orch, self.events,
                                    self.log.getChild('workflow'))

    def instance_created(self, instance: ActivityInstance) -> str:
        """
        queue the creation of the folders for a newly created activity instance
        """
        return submit_folder_creation(self.queue, instance)

    def run_pending_tasks(self) -> int:
        """
        execute the queued folder-creation tasks; return the number that completed
        """
        stale = self.cfg.get('task_queue', {}).get('stale_after', DEF_STALE_AFTER)
        return run_pending(self.queue, self.provisioner, self.platform,
                           self.log.getChild('provisioning'), stale)
