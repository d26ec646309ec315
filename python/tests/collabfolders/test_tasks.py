import os, json, tempfile, shutil, logging
import unittest as test
from pathlib import Path

from collabfolders import tasks
from collabfolders.config import ConfigurationException

tmpdir = tempfile.TemporaryDirectory(prefix="_test_tasks.")
qdir = Path(tmpdir.name) / "queue"

def tearDownModule():
    tmpdir.cleanup()

class TestTaskPayload(test.TestCase):

    def test_payload(self):
        self.assertEqual(tasks.task_payload({'customdata': {'cmid': 7}}), {'cmid': 7})
        self.assertEqual(tasks.task_payload({'customdata': '{"cmid": 7}'}), {'cmid': 7})
        self.assertEqual(tasks.task_payload({'customdata': 'not json'}), {})
        self.assertEqual(tasks.task_payload({'customdata': '[7]'}), {})
        self.assertEqual(tasks.task_payload({}), {})

    def test_is_pending(self):
        self.assertTrue(tasks.is_pending({}))
        self.assertTrue(tasks.is_pending({'state': tasks.PENDING}))
        self.assertTrue(tasks.is_pending({'state': tasks.RUNNING}))
        self.assertFalse(tasks.is_pending({'state': tasks.EXITED}))
        self.assertFalse(tasks.is_pending({'state': tasks.KILLED}))

class TestInMemoryTaskQueue(test.TestCase):

    def setUp(self):
        self.queue = tasks.InMemoryTaskQueue()

    def test_submit(self):
        tid = self.queue.submit(tasks.FOLDER_CREATE_TASK, {'cmid': 7})
        self.assertEqual(tid, "task0001")
        tlist = list(self.queue.tasks())
        self.assertEqual(len(tlist), 1)
        self.assertEqual(tlist[0]['id'], tid)
        self.assertEqual(tlist[0]['state'], tasks.PENDING)
        self.assertEqual(tlist[0]['customdata'], {'cmid': 7})
        self.assertIn('reqtime', tlist[0])

        self.queue.submit("other.task", {'cmid': 8})
        self.assertEqual(len(list(self.queue.tasks())), 2)
        self.assertEqual(len(list(self.queue.tasks(tasks.FOLDER_CREATE_TASK))), 1)

    def test_update_remove(self):
        tid = self.queue.submit(tasks.FOLDER_CREATE_TASK, {'cmid': 7})
        self.assertEqual(len(self.queue.list_pending(tasks.FOLDER_CREATE_TASK)), 1)

        task = next(self.queue.tasks())
        task['state'] = tasks.EXITED
        self.queue.update(task)
        self.assertEqual(self.queue.list_pending(tasks.FOLDER_CREATE_TASK), [])
        self.assertEqual(len(list(self.queue.tasks())), 1)

        self.queue.remove(tid)
        self.assertEqual(list(self.queue.tasks()), [])
        self.queue.remove(tid)

    def test_initial_tasks(self):
        queue = tasks.InMemoryTaskQueue([
            {'tasktype': tasks.FOLDER_CREATE_TASK, 'customdata': '{"cmid": 3}'},
            {'id': 'mine', 'tasktype': tasks.FOLDER_CREATE_TASK, 'state': tasks.RUNNING}
        ])
        ids = [t['id'] for t in queue.tasks()]
        self.assertEqual(ids, ["task0001", "mine"])
        self.assertEqual(len(queue.list_pending(tasks.FOLDER_CREATE_TASK)), 2)

class TestFSBasedTaskQueue(test.TestCase):

    def setUp(self):
        os.mkdir(qdir)
        self.queue = tasks.FSBasedTaskQueue(qdir)

    def tearDown(self):
        if qdir.exists():
            shutil.rmtree(qdir)

    def test_ctor(self):
        with self.assertRaises(ConfigurationException):
            tasks.FSBasedTaskQueue(qdir / "goob")
        self.assertTrue(isinstance(self.queue.log, logging.Logger))

    def test_submit(self):
        tid = self.queue.submit(tasks.FOLDER_CREATE_TASK, {'cmid': 7})
        self.assertTrue(tid.startswith("folders_create-"))
        self.assertTrue((qdir / f"{tid}.json").is_file())

        tlist = list(self.queue.tasks(tasks.FOLDER_CREATE_TASK))
        self.assertEqual(len(tlist), 1)
        self.assertEqual(tlist[0]['id'], tid)
        self.assertEqual(tlist[0]['customdata'], {'cmid': 7})
        self.assertEqual(list(self.queue.tasks("other.task")), [])

    def test_ignored_files(self):
        with open(qdir / "_hidden.json", 'w') as fd:
            json.dump({'tasktype': tasks.FOLDER_CREATE_TASK}, fd)
        with open(qdir / "notes.txt", 'w') as fd:
            fd.write("hello")
        with open(qdir / "broken.json", 'w') as fd:
            fd.write("{")
        self.assertEqual(list(self.queue.tasks()), [])

        with open(qdir / "legacy.json", 'w') as fd:
            json.dump({'tasktype': tasks.FOLDER_CREATE_TASK, 'customdata': '{"cmid": 9}'}, fd)
        tlist = list(self.queue.tasks())
        self.assertEqual(len(tlist), 1)
        self.assertEqual(tlist[0]['id'], "legacy")

    def test_update_remove(self):
        tid = self.queue.submit(tasks.FOLDER_CREATE_TASK, {'cmid': 7})
        task = next(self.queue.tasks())
        task['state'] = tasks.RUNNING
        self.queue.update(task)
        self.assertEqual(next(self.queue.tasks())['state'], tasks.RUNNING)

        self.queue.remove(tid)
        self.assertFalse((qdir / f"{tid}.json").exists())
        self.assertEqual(list(self.queue.tasks()), [])

class TestProvisioningStatusTracker(test.TestCase):

    def setUp(self):
        self.queue = tasks.InMemoryTaskQueue()
        self.tracker = tasks.ProvisioningStatusTracker(self.queue)

    def test_empty_queue(self):
        self.assertTrue(self.tracker.is_folder_created(7))

    def test_pending_task(self):
        self.queue.submit(tasks.FOLDER_CREATE_TASK, {'cmid': 7})
        self.assertFalse(self.tracker.is_folder_created(7))
        self.assertFalse(self.tracker.is_folder_created("7"))
        self.assertTrue(self.tracker.is_folder_created(8))

    def test_json_payload(self):
        self.queue.submit(tasks.FOLDER_CREATE_TASK, '{"cmid": "12"}')
        self.assertFalse(self.tracker.is_folder_created(12))

    def test_other_tasks_ignored(self):
        self.queue.submit("other.task", {'cmid': 7})
        self.assertTrue(self.tracker.is_folder_created(7))

    def test_finished_task(self):
        self.queue.submit(tasks.FOLDER_CREATE_TASK, {'cmid': 7})
        task = next(self.queue.tasks())
        task['state'] = tasks.KILLED
        self.queue.update(task)
        self.assertTrue(self.tracker.is_folder_created(7))


if __name__ == '__main__':
    test.main()
