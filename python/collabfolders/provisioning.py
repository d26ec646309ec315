"""
Creation of the remote folders for an activity instance.

When an instance is created, a folder-creation task is queued (see
:py:func:`submit_folder_creation`).  A background worker later executes the queued tasks via
:py:func:`run_pending`, which uses a :py:class:`FolderProvisioner` to create the instance
folder (and, in group mode, one subfolder per group) as the technical identity.  Until its task
has run successfully, an instance's folders are reported as not yet created by the
:py:class:`~collabfolders.tasks.ProvisioningStatusTracker`.
"""
import logging, time
from logging import Logger
from typing import Iterable

from .clients.webdav import WebDAVClient
from .exceptions import RemoteStorageException, PlatformError
from .platform import ActivityInstance, CourseStore
from .tasks import TaskQueue, task_payload, FOLDER_CREATE_TASK, PENDING, RUNNING

class FolderProvisioner:
    """
    creates instance and group folders in the technical identity's space
    """

    def __init__(self, wdcli: WebDAVClient, log: Logger=None):
        self.wdcli = wdcli
        if not log:
            log = logging.getLogger("collabfolders.provisioning")
        self.log = log

    def create_folders(self, instance_id, group_ids: Iterable=None):
        """
        ensure that the folder ``/<instance_id>`` exists along with a subfolder for each of the
        given group identifiers.  Folders that already exist are left untouched.
        """
        base = "/" + str(instance_id)
        self.wdcli.ensure_directory(base)
        for gid in (group_ids or []):
            self.wdcli.ensure_directory(f"{base}/{gid}")
        self.log.info("Created folders for instance %s", instance_id)

def submit_folder_creation(queue: TaskQueue, instance: ActivityInstance) -> str:
    """
    queue a task to create the folders for a newly created activity instance
    """
    return queue.submit(FOLDER_CREATE_TASK, {"cmid": instance.id})

DEF_STALE_AFTER = 3600

def run_pending(queue: TaskQueue, provisioner: FolderProvisioner, platform: CourseStore,
                log: Logger=None, stale_after: float=DEF_STALE_AFTER) -> int:
    """
    execute each pending folder-creation task once.  A task that succeeds is removed from the
    queue; one that fails is returned to the PENDING state with the reason recorded in its
    ``errors`` property.  A task left in the RUNNING state for longer than ``stale_after``
    seconds (e.g. by a worker that died) is run again.

    :return:  the number of tasks that completed successfully
    :rtype:   int
    """
    if not log:
        log = provisioner.log
    done = 0
    for task in queue.tasks(FOLDER_CREATE_TASK):
        state = task.get('state', PENDING)
        if state == RUNNING:
            started = task.get('started', task.get('reqtime', 0))
            if time.time() - started < stale_after:
                continue
            log.warning("Folder creation task %s appears abandoned; rerunning", task.get('id'))
        elif state != PENDING:
            continue

        cmid = task_payload(task).get('cmid')
        if cmid is None:
            log.warning("Folder creation task %s has no cmid; skipping", task.get('id'))
            continue

        task['state'] = RUNNING
        task['started'] = time.time()
        queue.update(task)
        try:
            groups = []
            if platform.group_mode_enabled(cmid):
                instance = platform.get_instance(cmid)
                groups = [g.id for g in platform.all_groups(instance.course_id, instance.grouping_id)]
            provisioner.create_folders(cmid, groups)

        except (RemoteStorageException, PlatformError) as ex:
            log.warning("Folder creation for instance %s failed: %s", cmid, str(ex))
            task['state'] = PENDING
            task['errors'] = [str(ex)]
            queue.update(task)

        except Exception as ex:
            log.exception("Unexpected error while creating folders for instance %s: %s",
                          cmid, str(ex))
            task['state'] = PENDING
            task['errors'] = [str(ex)]
            queue.update(task)

        else:
            queue.remove(task['id'])
            done += 1

    return done
