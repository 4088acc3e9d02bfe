import argparse
import os
import tempfile
import unittest
from unittest.mock import patch

import docker

from fvharness.cli_plugins.cleanup_plugin import CleanupPlugin
from fvharness.cli_plugins.config_plugin import ConfigPlugin
from fvharness.cli_plugins.status_plugin import StatusPlugin


class TestCleanupPlugin(unittest.TestCase):
    def setUp(self):
        self.plugin = CleanupPlugin()

    @patch("builtins.print")
    @patch("fvharness.cli_plugins.cleanup_plugin.ContainerManager")
    @patch.dict(os.environ, {"UNIQUE_SUFFIX": "-ci7"})
    def test_removes_configured_run(self, mock_manager_cls, mock_print):
        mock_manager_cls.return_value.remove_all.return_value = ["k8sfv-ci7-etcd", "k8sfv-ci7-felix"]
        self.plugin.run(argparse.Namespace())

        config = mock_manager_cls.call_args.args[0]
        self.assertEqual(config.name_prefix, "k8sfv-ci7-")
        mock_manager_cls.return_value.remove_all.assert_called_once_with()
        mock_print.assert_called_with("Removed 2 container(s): k8sfv-ci7-etcd, k8sfv-ci7-felix")

    @patch("builtins.print")
    @patch.dict(os.environ, {"UNIQUE_SUFFIX": ""})
    @patch("fvharness.cli_plugins.cleanup_plugin.ContainerManager")
    def test_nothing_to_remove(self, mock_manager_cls, mock_print):
        mock_manager_cls.return_value.remove_all.return_value = []
        self.plugin.run(argparse.Namespace())
        self.assertIn("No containers found", mock_print.call_args.args[0])

    @patch("builtins.print")
    @patch("fvharness.cli_plugins.cleanup_plugin.sys.exit", side_effect=SystemExit(1))
    @patch("fvharness.cli_plugins.cleanup_plugin.ContainerManager")
    def test_docker_unavailable(self, mock_manager_cls, mock_exit, mock_print):
        mock_manager_cls.side_effect = docker.errors.DockerException("daemon not running")
        with self.assertRaises(SystemExit):
            self.plugin.run(argparse.Namespace())
        mock_exit.assert_called_once_with(1)


class TestStatusPlugin(unittest.TestCase):
    @patch("builtins.print")
    @patch("fvharness.cli_plugins.status_plugin.ContainerManager")
    def test_lists_run_containers(self, mock_manager_cls, mock_print):
        mock_manager_cls.return_value.list_run_containers.return_value = [
            {"name": "k8sfv-apiserver", "status": "running", "image": "hyperkube:v1.10.4"},
            {"name": "k8sfv-felix", "status": "exited", "image": "calico/felix:latest"},
        ]
        StatusPlugin().run(argparse.Namespace())

        printed = "\n".join(c.args[0] for c in mock_print.call_args_list)
        self.assertIn("k8sfv-apiserver", printed)
        self.assertIn("exited", printed)

    @patch("builtins.print")
    @patch.dict(os.environ, {"UNIQUE_SUFFIX": ""})
    @patch("fvharness.cli_plugins.status_plugin.ContainerManager")
    def test_no_containers(self, mock_manager_cls, mock_print):
        mock_manager_cls.return_value.list_run_containers.return_value = []
        StatusPlugin().run(argparse.Namespace())
        mock_print.assert_called_once_with("No containers found for prefix k8sfv-")


class TestConfigPlugin(unittest.TestCase):
    @patch("builtins.print")
    def test_prints_resolved_values(self, mock_print):
        with patch.dict(os.environ, {"FELIX_VERSION": "v3.2.0"}):
            ConfigPlugin().run(argparse.Namespace(check=False))
        printed = mock_print.call_args_list[0].args[0]
        self.assertIn("FELIX_VERSION: v3.2.0", printed)
        self.assertIn("JUST_A_MINUTE: true", printed)

    @patch("builtins.print")
    def test_check_valid_manifest(self, mock_print):
        with tempfile.TemporaryDirectory() as temp_dir:
            crds = os.path.join(temp_dir, "crds.yaml")
            with open(crds, "w") as f:
                f.write("kind: CustomResourceDefinition\n")
            with patch.dict(os.environ, {"CRDS_FILE": crds}):
                ConfigPlugin().run(argparse.Namespace(check=True))
        self.assertIn("CRDS manifest OK", mock_print.call_args.args[0])

    @patch("builtins.print")
    @patch("fvharness.cli_plugins.config_plugin.sys.exit", side_effect=SystemExit(1))
    def test_check_missing_manifest(self, mock_exit, mock_print):
        with tempfile.TemporaryDirectory() as temp_dir:
            with patch.dict(os.environ, {"CRDS_FILE": os.path.join(temp_dir, "missing.yaml")}):
                with self.assertRaises(SystemExit):
                    ConfigPlugin().run(argparse.Namespace(check=True))
        mock_exit.assert_called_once_with(1)


if __name__ == "__main__":
    unittest.main()
