import time
import unittest as test
from unittest.mock import Mock

from collabfolders import provisioning as prov
from collabfolders.platform import InMemoryPlatform
from collabfolders.tasks import (InMemoryTaskQueue, ProvisioningStatusTracker, FOLDER_CREATE_TASK,
                                 PENDING, RUNNING)
from collabfolders.exceptions import *

import sim_clients as sim

class FolderProvisionerTest(test.TestCase):

    def setUp(self):
        self.cloud = sim.SimCloud("admin")
        self.prov = prov.FolderProvisioner(sim.SimWebDAVClient(self.cloud))

    def test_create_folders(self):
        self.prov.create_folders(7)
        self.assertEqual(self.cloud.space("admin"), {"/7"})

        self.prov.create_folders(9, [42, 43])
        self.assertEqual(self.cloud.space("admin"), {"/7", "/9", "/9/42", "/9/43"})

        # idempotent
        self.prov.create_folders(9, [42, 43])
        self.assertEqual(len(self.cloud.space("admin")), 4)

class RunPendingTest(test.TestCase):

    def setUp(self):
        self.platform = InMemoryPlatform({
            'instances': {
                7: {'course_id': 2, 'name': "Lab notes"},
                9: {'course_id': 2, 'grouping_id': 1, 'name': "Team work", 'group_mode': True}
            },
            'groups': {
                2: [ {'id': 42, 'name': "Team A", 'groupings': [1]},
                     {'id': 43, 'name': "Team B", 'groupings': [1]},
                     {'id': 44, 'name': "Other", 'groupings': [2]} ]
            }
        })
        self.cloud = sim.SimCloud("admin")
        self.prov = prov.FolderProvisioner(sim.SimWebDAVClient(self.cloud))
        self.queue = InMemoryTaskQueue()
        self.tracker = ProvisioningStatusTracker(self.queue)

    def test_submit(self):
        taskid = prov.submit_folder_creation(self.queue, self.platform.get_instance(7))
        tasks = list(self.queue.tasks(FOLDER_CREATE_TASK))
        self.assertEqual(len(tasks), 1)
        self.assertEqual(tasks[0]['id'], taskid)
        self.assertEqual(tasks[0]['customdata'], {"cmid": 7})
        self.assertEqual(tasks[0]['state'], PENDING)
        self.assertFalse(self.tracker.is_folder_created(7))
        self.assertTrue(self.tracker.is_folder_created(9))

    def test_run_pending(self):
        prov.submit_folder_creation(self.queue, self.platform.get_instance(7))
        prov.submit_folder_creation(self.queue, self.platform.get_instance(9))
        self.assertEqual(prov.run_pending(self.queue, self.prov, self.platform), 2)

        self.assertEqual(list(self.queue.tasks()), [])
        self.assertEqual(self.cloud.space("admin"), {"/7", "/9", "/9/42", "/9/43"})
        self.assertTrue(self.tracker.is_folder_created(7))
        self.assertTrue(self.tracker.is_folder_created(9))

        self.assertEqual(prov.run_pending(self.queue, self.prov, self.platform), 0)

    def test_failure(self):
        prov.submit_folder_creation(self.queue, self.platform.get_instance(7))
        self.cloud.fail_next("mkdir", RemoteServerError(503, "/7"))
        self.assertEqual(prov.run_pending(self.queue, self.prov, self.platform), 0)

        tasks = list(self.queue.tasks())
        self.assertEqual(len(tasks), 1)
        self.assertEqual(tasks[0]['state'], PENDING)
        self.assertEqual(len(tasks[0]['errors']), 1)
        self.assertIn("503", tasks[0]['errors'][0])
        self.assertFalse(self.tracker.is_folder_created(7))

        # the retry succeeds
        self.assertEqual(prov.run_pending(self.queue, self.prov, self.platform), 1)
        self.assertTrue(self.tracker.is_folder_created(7))

    def test_unknown_instance(self):
        self.queue.submit(FOLDER_CREATE_TASK, {"cmid": 8})
        self.assertEqual(prov.run_pending(self.queue, self.prov, self.platform), 0)
        self.assertIn("not found: 8", list(self.queue.tasks())[0]["errors"][0])
        self.assertEqual(self.cloud.space("admin"), set())

    def test_skip(self):
        self.queue.submit(FOLDER_CREATE_TASK, {"instance": 7})
        running = self.queue.submit(FOLDER_CREATE_TASK, {"cmid": 7})
        task = [t for t in self.queue.tasks() if t['id'] == running][0]
        task['state'] = RUNNING
        self.queue.update(task)
        self.queue.submit("other.task", {"cmid": 9})

        self.assertEqual(prov.run_pending(self.queue, self.prov, self.platform), 0)
        self.assertEqual(len(list(self.queue.tasks())), 3)
        self.assertEqual(self.cloud.space("admin"), set())

    def test_platform_error(self):
        platform = Mock()
        platform.group_mode_enabled.side_effect = PlatformError("db down")
        prov.submit_folder_creation(self.queue, self.platform.get_instance(9))
        self.assertEqual(prov.run_pending(self.queue, self.prov, platform), 0)
        self.assertEqual(list(self.queue.tasks())[0]['errors'], ["db down"])

    def test_unexpected_error(self):
        provisioner = Mock()
        provisioner.create_folders.side_effect = ValueError("bad group list")
        provisioner.log = self.prov.log
        prov.submit_folder_creation(self.queue, self.platform.get_instance(7))
        self.assertEqual(prov.run_pending(self.queue, provisioner, self.platform), 0)

        tasks = list(self.queue.tasks())
        self.assertEqual(len(tasks), 1)
        self.assertEqual(tasks[0]['state'], PENDING)
        self.assertEqual(tasks[0]['errors'], ["bad group list"])

        # the task is tried again on the next pass
        self.assertEqual(prov.run_pending(self.queue, self.prov, self.platform), 1)
        self.assertEqual(list(self.queue.tasks()), [])

    def test_abandoned_task(self):
        prov.submit_folder_creation(self.queue, self.platform.get_instance(7))
        task = list(self.queue.tasks())[0]
        task['state'] = RUNNING
        task['started'] = time.time() - 2 * prov.DEF_STALE_AFTER
        self.queue.update(task)
        self.assertFalse(self.tracker.is_folder_created(7))

        self.assertEqual(prov.run_pending(self.queue, self.prov, self.platform), 1)
        self.assertEqual(list(self.queue.tasks()), [])
        self.assertEqual(self.cloud.space("admin"), {"/7"})

        # without a start time, the request time is used
        prov.submit_folder_creation(self.queue, self.platform.get_instance(9))
        task = list(self.queue.tasks())[0]
        task['state'] = RUNNING
        task['reqtime'] = time.time() - 120
        self.queue.update(task)
        self.assertEqual(prov.run_pending(self.queue, self.prov, self.platform, stale_after=600), 0)
        self.assertEqual(prov.run_pending(self.queue, self.prov, self.platform, stale_after=60), 1)
        self.assertIn("/9/42", self.cloud.space("admin"))

    def test_started_recorded(self):
        provisioner = Mock()
        provisioner.log = self.prov.log
        states = []
        provisioner.create_folders.side_effect = \
            lambda *a: states.extend(list(self.queue.tasks()))
        prov.submit_folder_creation(self.queue, self.platform.get_instance(7))
        self.assertEqual(prov.run_pending(self.queue, provisioner, self.platform), 1)
        self.assertEqual(states[0]['state'], RUNNING)
        self.assertGreater(states[0]['started'], states[0]['reqtime'] - 1)


if __name__ == '__main__':
    test.main()
