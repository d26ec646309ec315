"""
Rendering of the activity page.  The workflow drives a :py:class:`PageRenderer`, calling one
method per page element in the order the elements should appear; :py:meth:`PageRenderer.page`
then returns the finished page.

:py:class:`JSONPageRenderer` produces the page as a JSON-serializable dictionary of the form:

.. code-block:: json

   {
     "heading": "Lab notes",
     "items": [
       { "type": "notice", "kind": "foldernotcreatedyet" },
       { "type": "link", "kind": "access", "url": "https://cloud.example.org/apps/files/?dir=/Lab" }
     ]
   }

or, for a request that should be redirected,

.. code-block:: json

   { "redirect": "/cf1/view?id=7", "message": "resetpressed" }
"""
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Iterable

from .platform import Group

# link kinds
ACCESS   = "access"
LOGIN    = "login"
LOGOUT   = "logout"
GENERATE = "generate"

class PageRenderer(ABC):
    """
    the interface for assembling the activity page
    """

    @abstractmethod
    def heading(self, title: str):
        raise NotImplementedError()

    @abstractmethod
    def notice(self, kind: str):
        """
        add an informational message identified by ``kind`` (e.g. ``foldernotcreatedyet``)
        """
        raise NotImplementedError()

    @abstractmethod
    def group_table(self, groups: Iterable[Group]):
        """
        add the overview table of the groups participating in the activity
        """
        raise NotImplementedError()

    @abstractmethod
    def link(self, url: str, kind: str):
        """
        add a link; ``kind`` is one of ``access``, ``login``, ``logout`` or ``generate``
        """
        raise NotImplementedError()

    @abstractmethod
    def error(self, kind: str, detail: str=None):
        """
        add an error message.  ``kind`` identifies the failed step (``shared``, ``renamed``,
        ``notloggedin``, ``badname``)
        """
        raise NotImplementedError()

    @abstractmethod
    def name_and_reset(self, name: str, reset_url: str):
        """
        show the folder name the user has chosen along with a link for resetting it
        """
        raise NotImplementedError()

    @abstractmethod
    def name_form(self, default: str, action_url: str):
        """
        add the form for entering a folder name, pre-filled with ``default``
        """
        raise NotImplementedError()

    @abstractmethod
    def redirect(self, url: str, message: str=None):
        """
        replace the page with a redirect to the given URL
        """
        raise NotImplementedError()

    @abstractmethod
    def page(self):
        """
        return the assembled page
        """
        raise NotImplementedError()

class JSONPageRenderer(PageRenderer):
    """
    a PageRenderer that assembles the page as a JSON-ready dictionary
    """

    def __init__(self):
        self._heading = None
        self._items = []
        self._redirect = None

    def _add(self, type, **props):
        item = OrderedDict([("type", type)])
        item.update(props)
        self._items.append(item)
        return item

    def heading(self, title: str):
        self._heading = title

    def notice(self, kind: str):
        self._add("notice", kind=kind)

    def group_table(self, groups: Iterable[Group]):
        self._add("grouptable", groups=[OrderedDict([("id", g.id), ("name", g.name)]) for g in groups])

    def link(self, url: str, kind: str):
        self._add("link", kind=kind, url=url)

    def error(self, kind: str, detail: str=None):
        item = self._add("error", kind=kind)
        if detail:
            item['detail'] = detail

    def name_and_reset(self, name: str, reset_url: str):
        self._add("name", name=name, reset=reset_url)

    def name_form(self, default: str, action_url: str):
        self._add("nameform", field="chosenName", default=default, action=action_url)

    def redirect(self, url: str, message: str=None):
        self._redirect = OrderedDict([("redirect", url)])
        if message:
            self._redirect['message'] = message

    @property
    def is_redirect(self) -> bool:
        return self._redirect is not None

    def page(self):
        if self._redirect:
            return OrderedDict(self._redirect)
        out = OrderedDict()
        if self._heading is not None:
            out['heading'] = self._heading
        out['items'] = list(self._items)
        return out
