"""
The request workflow of the collaborative folder activity page.

A single call to :py:meth:`ProvisioningWorkflow.view` handles one page request from one user:
it applies any reset, logout or name submission the request carries, decides what the user
may see and do, generates a link to the activity folder when asked to, and renders the page.
No state is kept between requests other than what is persisted in the user's preferences,
so repeating a request is safe.
"""
import logging, threading, weakref
from collections import namedtuple, OrderedDict
from logging import Logger
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode

from . import policy
from .paths import GroupContext, resolve_paths
from .platform import CapabilityStore, CourseStore, EventSink, ActivityInstance
from .platform import VIEW, ADD_INSTANCE, LINK_GENERATED, ACTIVITY_VIEWED
from .prefs.base import LinkCache
from .tasks import ProvisioningStatusTracker
from .orchestrator import ShareOrchestrator
from .clients.identity import IdentityService
from .render import PageRenderer, ACCESS, LOGIN, LOGOUT, GENERATE
from .exceptions import AccessDenied

_trigger_params = ("reset", "logout", "generate")

class PageRequest(namedtuple("PageRequest",
                             "instance_id reset logout generate chosen_name page_url")):
    """
    the parameters of a request for the activity page.

    ``instance_id``
        the identifier of the activity instance (required)
    ``reset``, ``logout``, ``generate``
        triggers requesting that the chosen name be reset, that the user's remote identity be
        forgotten, or that a link be generated
    ``chosen_name``
        a folder name submitted via the name form, or None
    ``page_url``
        the URL of the page for this instance; affordance URLs are built from it
    """
    __slots__ = ()

PageRequest.__new__.__defaults__ = (False, False, False, None, None)

def page_url_with(page_url: str, **params) -> str:
    """
    return the page URL with the trigger parameters removed and the given ones added
    """
    parts = urlsplit(page_url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True)
                    if k not in _trigger_params]
    query.extend(params.items())
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))

def clean_folder_name(name: str):
    """
    return a submitted folder name stripped of surrounding whitespace, or None if it is not
    usable as the name of a folder
    """
    name = (name or "").strip()
    if not name or "/" in name or name in (".", ".."):
        return None
    return name

class ProvisioningWorkflow:
    """
    the per-request workflow for the activity page
    """

    def __init__(self, capabilities: CapabilityStore, courses: CourseStore,
                 tracker: ProvisioningStatusTracker, links: LinkCache, identity: IdentityService,
                 orchestrator: ShareOrchestrator, events: EventSink, log: Logger=None):
        self.capabilities = capabilities
        self.courses = courses
        self.tracker = tracker
        self.links = links
        self.identity = identity
        self.orchestrator = orchestrator
        self.events = events
        if not log:
            log = logging.getLogger("collabfolders.workflow")
        self.log = log

        # entries go away once no request holds a reference to the lock
        self._locks = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _generate_lock(self, user: str, instance_id) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault((user, str(instance_id)), threading.Lock())

    def _event_data(self, user: str, instance: ActivityInstance):
        return OrderedDict([("context", instance.id), ("objectid", instance.record_id),
                            ("userid", user)])

    def group_context(self, user: str, instance: ActivityInstance) -> GroupContext:
        """
        determine the user's group situation for the given instance
        """
        if not self.courses.group_mode_enabled(instance.id):
            return GroupContext(False, None)
        return GroupContext(True, self.courses.current_group_of(user, instance.id))

    def view(self, user: str, request: PageRequest, renderer: PageRenderer):
        """
        handle a request for the activity page and return the rendered page

        :param str user:  the identifier of the (authenticated) user making the request
        :param PageRequest request:  the request parameters
        :param PageRenderer renderer:  the renderer to build the page with
        :raises AccessDenied:  if the user may not view the activity
        :raises InstanceNotFound:  if the requested instance does not exist
        """
        instance = self.courses.get_instance(request.instance_id)
        page_url = request.page_url or f"view?id={instance.id}"

        if not self.capabilities.has_capability(user, VIEW, instance.id):
            self.log.info("User %s denied view of instance %s", user, instance.id)
            raise AccessDenied(user=user, instance=instance.id)

        if request.reset:
            self.links.reset(user, instance.id)
            renderer.redirect(page_url_with(page_url), "resetpressed")
            return renderer.page()

        if request.logout:
            self.identity.logout(user)
            renderer.redirect(page_url_with(page_url), "logoutpressed")
            return renderer.page()

        renderer.heading(instance.name)

        if request.chosen_name is not None:
            name = clean_folder_name(request.chosen_name)
            if name:
                self.links.put(user, instance.id, name=name)
            else:
                renderer.error("badname", request.chosen_name)

        capadd = self.capabilities.has_capability(user, ADD_INSTANCE, instance.id)
        created = self.tracker.is_folder_created(instance.id)
        gctx = self.group_context(user, instance)
        decision = policy.evaluate(True, capadd, instance.teacher_allowed, created,
                                   gctx.group_mode_enabled)

        if not created:
            renderer.notice("foldernotcreatedyet")

        if decision.can_show_admin_table:
            renderer.group_table(self.courses.all_groups(instance.course_id, instance.grouping_id))

        link = None
        if decision.can_generate:
            link = self.links.get_link(user, instance.id)
            if link:
                renderer.link(link, ACCESS)

        name = self.links.get_name(user, instance.id)

        if not link and request.generate and decision.can_generate and name:
            link = self._generate(user, instance, gctx, name, renderer)

        if not link:
            if name:
                renderer.name_and_reset(name, page_url_with(page_url, reset=1))
                if self.identity.is_logged_in(user):
                    renderer.link(page_url_with(page_url, logout=1), LOGOUT)
                else:
                    renderer.link(self.identity.login_url(user, page_url_with(page_url)), LOGIN)
                renderer.link(page_url_with(page_url, generate=1), GENERATE)
            else:
                renderer.name_form(instance.name, page_url_with(page_url))

        self.events.emit(ACTIVITY_VIEWED, self._event_data(user, instance))
        return renderer.page()

    def _generate(self, user: str, instance: ActivityInstance, gctx: GroupContext, name: str,
                  renderer: PageRenderer):
        identity = self.identity.acquire_identity(user)
        if not identity:
            renderer.error("notloggedin")
            return None

        paths = resolve_paths(instance.id, gctx)
        with self._generate_lock(user, instance.id):
            # a concurrent request may have finished first
            link = self.links.get_link(user, instance.id)
            if link:
                renderer.link(link, ACCESS)
                return link

            outcome = self.orchestrator.provision(paths.share_path, paths.final_path, instance.id,
                                                  identity, name)
            if outcome.succeeded:
                self.links.put(user, instance.id, link=outcome.link)

        if not outcome.succeeded:
            renderer.error(outcome.kind, outcome.detail)
            return None

        renderer.link(outcome.link, ACCESS)
        self.events.emit(LINK_GENERATED, self._event_data(user, instance))
        return outcome.link
