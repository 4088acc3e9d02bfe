import argparse
import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from fvharness.cli_plugins.run_plugin import RunPlugin
from fvharness.lib.utils_lib import HarnessInterrupted
from fvharness.runners._base_runner import RunResult, RunStatus


class TestRunPlugin(unittest.TestCase):
    def setUp(self):
        self.plugin = RunPlugin()
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.crds = os.path.join(self.temp_dir.name, "crds.yaml")
        with open(self.crds, "w") as f:
            f.write("kind: CustomResourceDefinition\n")
        self.environ = {"CRDS_FILE": self.crds, "OUTPUT_DIR": os.path.join(self.temp_dir.name, "output")}

    @patch("fvharness.cli_plugins.run_plugin.K8sfvRunner")
    def test_missing_manifest_exits_before_runner(self, mock_runner_cls):
        self.environ["CRDS_FILE"] = os.path.join(self.temp_dir.name, "missing.yaml")
        self.assertEqual(self.plugin.run_harness(self.environ), 1)
        mock_runner_cls.assert_not_called()

    @patch("fvharness.cli_plugins.run_plugin.K8sfvRunner")
    def test_invalid_configuration_exits_before_runner(self, mock_runner_cls):
        self.environ["CLEANUP"] = "perhaps"
        self.assertEqual(self.plugin.run_harness(self.environ), 1)
        mock_runner_cls.assert_not_called()

    @patch("fvharness.cli_plugins.run_plugin.K8sfvRunner")
    def test_returns_final_exit_code(self, mock_runner_cls):
        for exit_code, status in ((0, RunStatus.COMPLETED), (4, RunStatus.FAILED)):
            with self.subTest(exit_code=exit_code):
                mock_runner_cls.return_value.execute.return_value = RunResult(
                    status=status, start_time=0.0, end_time=1.0, exit_code=exit_code
                )
                self.assertEqual(self.plugin.run_harness(self.environ), exit_code)

        config = mock_runner_cls.call_args.args[0]
        self.assertEqual(str(config.crds_path), self.crds)

    @patch("fvharness.cli_plugins.run_plugin.K8sfvRunner")
    def test_failed_run_without_status_exits_one(self, mock_runner_cls):
        mock_runner_cls.return_value.execute.return_value = RunResult(
            status=RunStatus.FAILED, start_time=0.0, end_time=1.0, error_message="Setup failed"
        )
        self.assertEqual(self.plugin.run_harness(self.environ), 1)

    @patch("fvharness.cli_plugins.run_plugin.K8sfvRunner")
    def test_interrupt_exit_codes(self, mock_runner_cls):
        mock_runner_cls.return_value.execute.side_effect = HarnessInterrupted(15)
        self.assertEqual(self.plugin.run_harness(self.environ), 143)

        mock_runner_cls.return_value.execute.side_effect = KeyboardInterrupt()
        self.assertEqual(self.plugin.run_harness(self.environ), 130)

    @patch("fvharness.cli_plugins.run_plugin.restore_signal_handlers")
    @patch("fvharness.cli_plugins.run_plugin.install_signal_handlers")
    @patch("fvharness.cli_plugins.run_plugin.K8sfvRunner")
    def test_signal_handlers_restored(self, mock_runner_cls, mock_install, mock_restore):
        mock_runner_cls.return_value.execute.return_value = RunResult(
            status=RunStatus.COMPLETED, start_time=0.0, end_time=1.0, exit_code=0
        )
        self.plugin.run_harness(self.environ)
        mock_install.assert_called_once_with()
        mock_restore.assert_called_once_with(mock_install.return_value)

    @patch("fvharness.cli_plugins.run_plugin.sys.exit")
    @patch("fvharness.cli_plugins.run_plugin.configure_logging")
    def test_run_configures_logging_and_exits(self, mock_logging, mock_exit):
        args = argparse.Namespace(log_level="DEBUG", log_file="/tmp/fvharness/run.log")
        with patch.object(self.plugin, "run_harness", return_value=7):
            self.plugin.run(args)
        mock_logging.assert_called_once_with("DEBUG", "/tmp/fvharness/run.log")
        mock_exit.assert_called_once_with(7)

    def test_parser_defaults(self):
        parser = argparse.ArgumentParser()
        subparsers = parser.add_subparsers(dest="command")
        self.plugin.get_parser(subparsers)
        args = parser.parse_args(["run"])
        self.assertEqual(args.log_level, "INFO")
        self.assertIsNone(args.log_file)
        self.assertIs(args._plugin, self.plugin)


if __name__ == "__main__":
    unittest.main()
