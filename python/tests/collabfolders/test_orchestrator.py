import unittest as test
from unittest.mock import Mock

from collabfolders import orchestrator as orch
from collabfolders.clients.identity import RemoteIdentity
from collabfolders.exceptions import *
from collabfolders.config import ConfigurationException

import sim_clients as sim

FILES_URL = "https://cloud.net/apps/files/"

class ShareOrchestratorTest(test.TestCase):

    def setUp(self):
        self.cloud = sim.SimCloud("admin")
        admin = sim.SimWebDAVClient(self.cloud)
        admin.ensure_directory("/7")
        admin.ensure_directory("/7/42")
        self.shares = sim.SimShareApi(self.cloud)
        self.userclients = []
        self.orch = orch.ShareOrchestrator(self.shares, self.make_user_client, FILES_URL)
        self.ident = RemoteIdentity("alice_nc", "abc")

    def make_user_client(self, identity):
        cli = sim.SimWebDAVClient(self.cloud, identity.user_id)
        self.userclients.append(cli)
        return cli

    def test_link_for(self):
        self.assertEqual(self.orch.link_for("Lab"), FILES_URL+"?dir=/Lab")
        self.assertEqual(self.orch.link_for("Lab notes"), FILES_URL+"?dir=/Lab%20notes")

    def test_provision(self):
        out = self.orch.provision("/7", "/7", 7, self.ident, "Lab")
        self.assertIsInstance(out, orch.Shared)
        self.assertTrue(out.succeeded)
        self.assertEqual(out.link, FILES_URL+"?dir=/Lab")
        self.assertEqual(out.remote_id, "1")
        self.assertEqual(self.cloud.space("alice_nc"), {"/Lab", "/Lab/42"})
        self.assertEqual(self.shares.calls, 1)
        self.assertEqual(self.userclients[0].calls, 1)

    def test_provision_group(self):
        out = self.orch.provision("/7/42", "/42", 7, self.ident, "Team")
        self.assertTrue(out.succeeded)
        self.assertEqual(self.cloud.space("alice_nc"), {"/Team"})

    def test_name_matches_final_path(self):
        out = self.orch.provision("/7", "/7", 7, self.ident, "7")
        self.assertTrue(out.succeeded)
        self.assertEqual(self.userclients, [])

    def test_share_failed(self):
        out = self.orch.provision("/8", "/8", 8, self.ident, "Lab")
        self.assertIsInstance(out, orch.ShareFailed)
        self.assertFalse(out.succeeded)
        self.assertFalse(out.timed_out)
        self.assertEqual(out.kind, "shared")
        self.assertIn("Wrong path", out.detail)

        # rename is never attempted after a failed share
        self.assertEqual(self.userclients, [])

    def test_share_failed_no_rename_mock(self):
        share_api = Mock()
        share_api.create_share.side_effect = RemoteServerError(500, "shares")
        factory = Mock()
        o = orch.ShareOrchestrator(share_api, factory, FILES_URL)
        out = o.provision("/7", "/7", 7, self.ident, "Lab")
        self.assertIsInstance(out, orch.ShareFailed)
        self.assertEqual(share_api.create_share.call_count, 1)
        self.assertEqual(factory.call_count, 0)

    def test_share_timeout(self):
        self.cloud.fail_next("create_share", RemoteTimeout(ep="shares", timeout=30))
        out = self.orch.provision("/7", "/7", 7, self.ident, "Lab")
        self.assertIsInstance(out, orch.ShareFailed)
        self.assertTrue(out.timed_out)
        self.assertTrue(out.detail.startswith("timeout: "))

    def test_rename_failed(self):
        self.cloud.space("alice_nc").add("/Lab")
        out = self.orch.provision("/7", "/7", 7, self.ident, "Lab")
        self.assertIsInstance(out, orch.RenameFailed)
        self.assertEqual(out.kind, "renamed")
        self.assertFalse(out.timed_out)
        self.assertEqual(out.remote_id, "1")

        # the share is not rolled back
        self.assertEqual(len(self.shares.get_shares("/7")), 1)
        self.assertIn("/7", self.cloud.space("alice_nc"))

    def test_rename_timeout(self):
        self.cloud.fail_next("move", RemoteTimeout(timeout=30))
        out = self.orch.provision("/7", "/7", 7, self.ident, "Lab")
        self.assertIsInstance(out, orch.RenameFailed)
        self.assertTrue(out.timed_out)
        self.assertTrue(out.detail.startswith(orch.TIMEOUT_TAG))
        self.assertEqual(self.shares.calls, 1)
        self.assertEqual(self.userclients[0].calls, 1)

    def test_user_client_unavailable(self):
        factory = Mock(side_effect=ConfigurationException("Missing config parameter: nextcloud_base_url"))
        o = orch.ShareOrchestrator(self.shares, factory, FILES_URL)
        out = o.provision("/7", "/7", 7, self.ident, "Lab")
        self.assertIsInstance(out, orch.RenameFailed)
        self.assertFalse(out.timed_out)
        self.assertIn("nextcloud_base_url", out.detail)
        self.assertEqual(out.remote_id, "1")
        self.assertEqual(len(self.shares.get_shares("/7")), 1)

    def test_permissions(self):
        share_api = Mock()
        share_api.create_share.return_value = {"id": "5"}
        o = orch.ShareOrchestrator(share_api, Mock(), FILES_URL, permissions=1)
        res = o.create_share("/7", "alice_nc")
        self.assertEqual(res, orch.ShareResult(True, "5", None))
        share_api.create_share.assert_called_once_with("/7", "alice_nc", 1)


if __name__ == '__main__':
    test.main()
