"""
Access to the queue of background (ad hoc) tasks that create the remote folders for an
activity instance, and a tracker that uses it to tell whether an instance's folders exist
yet.

A task's state is a dictionary with the following properties:

``tasktype``
    the name of the kind of task (e.g. :py:data:`FOLDER_CREATE_TASK`)
``state``
    an int enumeration value indicating the current state of the task (PENDING, RUNNING,
    EXITED, KILLED)
``customdata``
    the task's payload, either a dictionary or a JSON-encoded string of one.  Folder-creation
    tasks carry the instance's module id as ``cmid``.
``reqtime``
    the epoch time (in seconds) that the task was queued
``errors``
    if present, a list of messages describing why the last execution failed

A task that has not yet run successfully (state PENDING or RUNNING) is *pending*.  There
is no notification when a task completes; callers poll the queue.
"""
import os, json, time, logging, threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Mapping
from copy import deepcopy
from logging import Logger
from pathlib import Path
from typing import List, Union, Iterator

from .utils import read_json, write_json
from .config import ConfigurationException

PENDING = 0
RUNNING = 1
EXITED  = 2
KILLED  = 3
_states = list(range(KILLED+1))

FOLDER_CREATE_TASK = "collabfolders.folders_create"

def task_payload(task: Mapping) -> Mapping:
    """
    return the payload of a task state record as a dictionary, decoding it if it was
    stored as a JSON string.  An undecodable payload is returned as an empty dictionary.
    """
    data = task.get('customdata') or {}
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError:
            return {}
    if not isinstance(data, Mapping):
        return {}
    return data

def is_pending(task: Mapping) -> bool:
    return task.get('state', PENDING) in (PENDING, RUNNING)

class TaskQueue(ABC):
    """
    an interface to a collection of queued tasks
    """

    @abstractmethod
    def submit(self, tasktype: str, customdata: Mapping) -> str:
        """
        queue a new task and return its identifier
        """
        raise NotImplementedError()

    @abstractmethod
    def tasks(self, tasktype: str=None) -> Iterator[Mapping]:
        """
        iterate through the state records of the queued tasks, optionally restricted to
        those of a given type.  Each record includes its identifier as ``id``.
        """
        raise NotImplementedError()

    @abstractmethod
    def update(self, task: Mapping):
        """
        save changes to a task's state record
        """
        raise NotImplementedError()

    @abstractmethod
    def remove(self, taskid: str):
        """
        remove a (completed) task from the queue
        """
        raise NotImplementedError()

    def list_pending(self, tasktype: str) -> List[Mapping]:
        """
        return the pending tasks of the given type.  The cost of this call is proportional
        to the total number of queued tasks.
        """
        return [t for t in self.tasks(tasktype) if is_pending(t)]

def _new_task(taskid, tasktype, customdata):
    return OrderedDict([
        ("id", taskid),
        ("tasktype", tasktype),
        ("state", PENDING),
        ("customdata", deepcopy(customdata)),
        ("reqtime", time.time())
    ])

class InMemoryTaskQueue(TaskQueue):
    """
    a TaskQueue kept in memory; this is provided primarily for testing purposes
    """

    def __init__(self, tasks: List[Mapping]=None):
        self._tasks = OrderedDict()
        self._nextid = 0
        self._lock = threading.Lock()
        for t in (tasks or []):
            t = deepcopy(t)
            t.setdefault('id', self._mkid())
            self._tasks[t['id']] = t

    def _mkid(self):
        self._nextid += 1
        return "task%04d" % self._nextid

    def submit(self, tasktype: str, customdata: Mapping) -> str:
        with self._lock:
            task = _new_task(self._mkid(), tasktype, customdata)
            self._tasks[task['id']] = task
        return task['id']

    def tasks(self, tasktype: str=None) -> Iterator[Mapping]:
        for task in list(self._tasks.values()):
            if tasktype and task.get('tasktype') != tasktype:
                continue
            yield deepcopy(task)

    def update(self, task: Mapping):
        self._tasks[task['id']] = deepcopy(task)

    def remove(self, taskid: str):
        self._tasks.pop(taskid, None)

class FSBasedTaskQueue(TaskQueue):
    """
    a TaskQueue that persists each task's state as a JSON file in a queue directory.  The files
    are named after the task's identifier; files whose names begin with "." or "_" are ignored.
    """

    def __init__(self, queuedir: Union[str, Path], log: Logger=None):
        if isinstance(queuedir, str):
            queuedir = Path(queuedir)
        if not queuedir.is_dir():
            raise ConfigurationException(f"{queuedir}: task queue directory does not exist")
        self.qdir = queuedir
        if not log:
            log = logging.getLogger("collabfolders.tasks")
        self.log = log

    def _state_file(self, taskid: str) -> Path:
        return self.qdir / f"{taskid}.json"

    def submit(self, tasktype: str, customdata: Mapping) -> str:
        taskid = "%s-%d" % (tasktype.rsplit('.', 1)[-1], time.time_ns())
        write_json(_new_task(taskid, tasktype, customdata), self._state_file(taskid))
        self.log.debug("Queued %s task: %s", tasktype, taskid)
        return taskid

    def tasks(self, tasktype: str=None) -> Iterator[Mapping]:
        for f in sorted(os.listdir(self.qdir)):
            if not f.endswith(".json") or f.startswith(".") or f.startswith('_'):
                continue
            try:
                task = read_json(self.qdir / f)
            except FileNotFoundError:
                # completed since the listing
                continue
            except ValueError:
                self.log.warning("Trouble reading task state file: %s", f)
                continue
            task.setdefault('id', f[:-1*len(".json")])
            if tasktype and task.get('tasktype') != tasktype:
                continue
            yield task

    def update(self, task: Mapping):
        write_json(task, self._state_file(task['id']))

    def remove(self, taskid: str):
        try:
            self._state_file(taskid).unlink()
        except FileNotFoundError:
            pass

class ProvisioningStatusTracker:
    """
    determines whether the folders for an activity instance have been created by checking
    for outstanding folder-creation tasks.
    """

    def __init__(self, queue: TaskQueue, tasktype: str=FOLDER_CREATE_TASK, log: Logger=None):
        self.queue = queue
        self.tasktype = tasktype
        if not log:
            log = logging.getLogger("collabfolders.tasks")
        self.log = log

    def is_folder_created(self, instance_id) -> bool:
        """
        return False if at least one pending folder-creation task refers to the given instance
        (by its module id); otherwise return True.
        """
        for task in self.queue.list_pending(self.tasktype):
            if str(task_payload(task).get('cmid')) == str(instance_id):
                self.log.debug("Folders for instance %s not yet created (task %s pending)",
                               instance_id, task.get('id'))
                return False
        return True
