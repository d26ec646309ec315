import os, json, tempfile, shutil, threading
import unittest as test
from pathlib import Path

from collabfolders.prefs import fsbased
from collabfolders.config import ConfigurationException
from collabfolders.exceptions import PreferenceStoreUnavailable

tmpdir = tempfile.TemporaryDirectory(prefix="_test_fsbased_prefs.")
rootdir = Path(tmpdir.name) / "prefs"

def tearDownModule():
    tmpdir.cleanup()

class TestFSBasedPreferenceStore(test.TestCase):

    def setUp(self):
        os.mkdir(rootdir)
        self.store = fsbased.FSBasedPreferenceStore(rootdir)

    def tearDown(self):
        if rootdir.exists():
            shutil.rmtree(rootdir)

    def test_ctor(self):
        with self.assertRaises(ConfigurationException):
            fsbased.FSBasedPreferenceStore(rootdir / "goob")
        self.assertEqual(self.store._root, rootdir)

    def test_get_default(self):
        self.assertIsNone(self.store.get_preference("alice", "cf_link 7"))
        self.assertEqual(self.store.get_preference("alice", "cf_link 7", "x"), "x")

    def test_set_get(self):
        self.store.set_preference("alice", "cf_link 7", "L")
        self.store.set_preference("alice", "cf_link 7 name", "N")
        self.assertEqual(self.store.get_preference("alice", "cf_link 7"), "L")
        self.assertEqual(self.store.get_preference("alice", "cf_link 7 name"), "N")

        with open(rootdir / "alice.json") as fd:
            data = json.load(fd)
        self.assertEqual(data, {"cf_link 7": "L", "cf_link 7 name": "N"})

        self.store.set_preference("alice", "cf_link 7", "L2")
        self.assertEqual(self.store.get_preference("alice", "cf_link 7"), "L2")
        self.assertEqual(self.store.get_preference("alice", "cf_link 7 name"), "N")

        self.store.unset_preference("alice", "cf_link 7 name")
        self.assertIsNone(self.store.get_preference("alice", "cf_link 7 name"))
        self.assertEqual(self.store.get_preference("alice", "cf_link 7"), "L2")

    def test_structured_value(self):
        self.store.set_preference("bob", "cf_oauth2_token", {"access_token": "abc", "user_id": "bob"})
        self.assertEqual(self.store.get_preference("bob", "cf_oauth2_token"),
                         {"access_token": "abc", "user_id": "bob"})

    def test_unsafe_user_name(self):
        self.store.set_preference("../eve", "k", "v")
        self.assertEqual(self.store.get_preference("../eve", "k"), "v")
        self.assertEqual([f.name for f in rootdir.iterdir()], ["..%2Feve.json"])

    def test_distinct_users_distinct_files(self):
        users = ["alice smith", "alice/smith", "alice_smith", "alice%20smith"]
        for u in users:
            self.store.set_preference(u, "cf_oauth2_token", {"access_token": "tok-"+u})
        for u in users:
            self.assertEqual(self.store.get_preference(u, "cf_oauth2_token"),
                             {"access_token": "tok-"+u})
        self.assertEqual(len(list(rootdir.iterdir())), 4)

        self.store.unset_preference("alice smith", "cf_oauth2_token")
        self.assertIsNone(self.store.get_preference("alice smith", "cf_oauth2_token"))
        self.assertIsNotNone(self.store.get_preference("alice_smith", "cf_oauth2_token"))
        self.store.set_preference("alice@cloud.net", "k", "v")
        self.assertTrue((rootdir / "alice@cloud.net.json").exists())

    def test_concurrent_writes(self):
        def setter(i):
            self.store.set_preference("carol", f"key{i}", i)
        threads = [threading.Thread(target=setter, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        for i in range(10):
            self.assertEqual(self.store.get_preference("carol", f"key{i}"), i)

    def test_corrupted(self):
        with open(rootdir / "dave.json", 'w') as fd:
            fd.write("{")
        with self.assertRaises(PreferenceStoreUnavailable):
            self.store.get_preference("dave", "k")
        with self.assertRaises(PreferenceStoreUnavailable):
            self.store.set_preference("dave", "k", "v")


if __name__ == '__main__':
    test.main()
