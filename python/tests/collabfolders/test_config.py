import os, json, tempfile, logging
import unittest as test
from pathlib import Path

from collabfolders import config

tmpdir = tempfile.TemporaryDirectory(prefix="_test_cf_config.")

def tearDownModule():
    tmpdir.cleanup()

class TestLoadConfig(test.TestCase):

    def setUp(self):
        self.dir = Path(tmpdir.name)

    def test_load_yaml(self):
        cfgfile = self.dir / "cf.yml"
        with open(cfgfile, 'w') as fd:
            fd.write("admin_user: admin\nwebdav:\n  timeout: 5\n")
        cfg = config.load_from_file(cfgfile)
        self.assertEqual(cfg, {"admin_user": "admin", "webdav": {"timeout": 5}})
        self.assertEqual(config.resolve_configuration(str(cfgfile)), cfg)

    def test_load_json(self):
        cfgfile = self.dir / "cf.json"
        with open(cfgfile, 'w') as fd:
            json.dump({"admin_user": "admin"}, fd)
        self.assertEqual(config.load_from_file(cfgfile), {"admin_user": "admin"})

    def test_load_empty(self):
        cfgfile = self.dir / "empty.yml"
        with open(cfgfile, 'w') as fd:
            pass
        self.assertEqual(config.load_from_file(cfgfile), {})

    def test_load_errors(self):
        with self.assertRaises(config.ConfigurationException):
            config.load_from_file(self.dir / "missing.yml")

        cfgfile = self.dir / "list.yml"
        with open(cfgfile, 'w') as fd:
            fd.write("- a\n- b\n")
        with self.assertRaises(config.ConfigurationException):
            config.load_from_file(cfgfile)

        cfgfile = self.dir / "bad.json"
        with open(cfgfile, 'w') as fd:
            fd.write("{ goober")
        with self.assertRaises(config.ConfigurationException) as cm:
            config.load_from_file(cfgfile)
        self.assertIsNotNone(cm.exception.cause)

class TestMergeConfig(test.TestCase):

    def test_merge(self):
        defs = {"a": 1, "b": {"c": 2, "d": 3}, "e": [1, 2]}
        prim = {"b": {"c": 5}, "e": [3], "f": "x"}
        out = config.merge_config(prim, defs)
        self.assertEqual(out, {"a": 1, "b": {"c": 5, "d": 3}, "e": [3], "f": "x"})
        self.assertEqual(defs["b"]["c"], 2)
        self.assertEqual(prim, {"b": {"c": 5}, "e": [3], "f": "x"})

    def test_replace_non_dict(self):
        out = config.merge_config({"b": "flat"}, {"b": {"c": 2}})
        self.assertEqual(out, {"b": "flat"})

class TestConfigureLog(test.TestCase):

    def tearDown(self):
        if config._log_handler:
            logging.getLogger().removeHandler(config._log_handler)
            config._log_handler.close()
            config._log_handler = None

    def test_configure_log(self):
        config.configure_log(config={'logdir': tmpdir.name, 'logfile': "cf.log",
                                     'loglevel': "debug"})
        self.assertEqual(config.global_logfile, os.path.join(tmpdir.name, "cf.log"))
        self.assertEqual(logging.getLogger().level, logging.DEBUG)
        logging.getLogger("collabfolders.test").debug("hello")
        config._log_handler.flush()
        with open(config.global_logfile) as fd:
            content = fd.read()
        self.assertIn("Writing log messages to", content)
        self.assertIn("hello", content)


if __name__ == '__main__':
    test.main()
