"""
Interfaces to the learning platform that hosts the collaborative folder activity: the
capabilities users hold on activity instances, the course, group and instance information
the activity depends on, and the platform's event log.

An :py:class:`InMemoryPlatform` implementation, loadable from configuration data, is provided
for standalone deployments and testing.  The data it is loaded from looks like this (as YAML):

.. code-block:: yaml

   instances:
     "7":
       record_id:  3
       course_id:  2
       grouping_id: 0
       name: "Lab notes"
       teacher_allowed: false
       group_mode: true
   groups:
     "2":
       - { id: 42, name: "Team A", groupings: [ 1 ], members: [ "alice" ] }
   capabilities:
     "7":
       view: [ "alice", "bob", "tina" ]
       addinstance: [ "tina" ]
"""
import logging
from abc import ABC, abstractmethod
from collections import namedtuple
from collections.abc import Mapping
from copy import deepcopy
from logging import Logger
from typing import List, Optional

from .exceptions import InstanceNotFound, PlatformError

VIEW = "view"
ADD_INSTANCE = "addinstance"

LINK_GENERATED = "link_generated"
ACTIVITY_VIEWED = "activity_viewed"

class ActivityInstance(namedtuple("ActivityInstance",
                                  "id record_id course_id grouping_id name teacher_allowed")):
    """
    an occurrence of the collaborative folder activity within a course.  ``id`` is the
    course-module identifier which names the instance's remote folder; ``record_id`` is the
    identifier of the activity's settings record.
    """
    __slots__ = ()

Group = namedtuple("Group", "id name")

class CapabilityStore(ABC):

    @abstractmethod
    def has_capability(self, user: str, action: str, instance_id) -> bool:
        """
        return True if the user holds the capability to carry out the given action
        (:py:data:`VIEW` or :py:data:`ADD_INSTANCE`) on an activity instance
        """
        raise NotImplementedError()

class CourseStore(ABC):
    """
    read-only access to activity instances and the course groups they involve
    """

    @abstractmethod
    def get_instance(self, instance_id) -> ActivityInstance:
        """
        return the description of an activity instance
        :raises InstanceNotFound:  if no such instance exists
        """
        raise NotImplementedError()

    @abstractmethod
    def group_mode_enabled(self, instance_id) -> bool:
        raise NotImplementedError()

    @abstractmethod
    def all_groups(self, course_id, grouping_id=0) -> List[Group]:
        """
        return the groups of a course, restricted to a grouping unless ``grouping_id`` is 0
        """
        raise NotImplementedError()

    @abstractmethod
    def current_group_of(self, user: str, instance_id) -> Optional[int]:
        """
        return the identifier of the first of the instance's groups that the user is a member
        of, or None if the user belongs to none of them.
        """
        raise NotImplementedError()

class EventSink(ABC):

    @abstractmethod
    def emit(self, name: str, data: Mapping):
        """
        record the occurrence of an event
        """
        raise NotImplementedError()

class LoggingEventSink(EventSink):
    """
    an EventSink that writes events to a log
    """

    def __init__(self, log: Logger=None):
        if not log:
            log = logging.getLogger("collabfolders.events")
        self.log = log

    def emit(self, name: str, data: Mapping):
        self.log.info("Event %s: %s", name,
                      ", ".join(f"{k}={v}" for k, v in data.items()))

class InMemoryPlatform(CapabilityStore, CourseStore):
    """
    a platform whose instances, groups and capabilities are held in memory.  Identifiers
    are compared as strings so that data loaded from YAML or JSON can use either integer or
    string keys.
    """

    def __init__(self, data: Mapping=None):
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise PlatformError("Platform data is not a dictionary")
        self._instances = {str(k): v for k, v in data.get('instances', {}).items()}
        self._groups = {str(k): v for k, v in data.get('groups', {}).items()}
        self._caps = {str(k): v for k, v in data.get('capabilities', {}).items()}

    def _instance_data(self, instance_id) -> Mapping:
        try:
            return self._instances[str(instance_id)]
        except KeyError:
            raise InstanceNotFound(instance_id) from None

    def get_instance(self, instance_id) -> ActivityInstance:
        rec = self._instance_data(instance_id)
        return ActivityInstance(
            int(instance_id) if str(instance_id).isdigit() else instance_id,
            rec.get('record_id', instance_id),
            rec.get('course_id'),
            rec.get('grouping_id', 0),
            rec.get('name', ''),
            bool(rec.get('teacher_allowed', False))
        )

    def group_mode_enabled(self, instance_id) -> bool:
        return bool(self._instance_data(instance_id).get('group_mode', False))

    def all_groups(self, course_id, grouping_id=0) -> List[Group]:
        out = []
        for grp in self._groups.get(str(course_id), []):
            if grouping_id and grouping_id not in grp.get('groupings', []):
                continue
            out.append(Group(grp['id'], grp.get('name', str(grp['id']))))
        return out

    def current_group_of(self, user: str, instance_id) -> Optional[int]:
        rec = self._instance_data(instance_id)
        grouping = rec.get('grouping_id', 0)
        for grp in self._groups.get(str(rec.get('course_id')), []):
            if grouping and grouping not in grp.get('groupings', []):
                continue
            if user in grp.get('members', []):
                return grp['id']
        return None

    def has_capability(self, user: str, action: str, instance_id) -> bool:
        self._instance_data(instance_id)
        return user in self._caps.get(str(instance_id), {}).get(action, [])

    def add_instance(self, instance_id, **props):
        """
        register (or replace) an activity instance
        """
        self._instances[str(instance_id)] = deepcopy(props)

    def grant(self, user: str, action: str, instance_id):
        """
        give a user a capability on an instance
        """
        users = self._caps.setdefault(str(instance_id), {}).setdefault(action, [])
        if user not in users:
            users.append(user)
