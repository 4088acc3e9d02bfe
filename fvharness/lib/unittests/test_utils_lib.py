# fvharness/lib/unittests/test_utils_lib.py
import logging
import os
import signal
import tempfile
import unittest

import fvharness.lib.utils_lib as utils_lib


class TestSignalHandlers(unittest.TestCase):
    def setUp(self):
        self.original = {sig: signal.getsignal(sig) for sig in (signal.SIGTERM, signal.SIGQUIT)}
        self.addCleanup(utils_lib.restore_signal_handlers, self.original)

    def test_sigterm_raises_harness_interrupted(self):
        utils_lib.install_signal_handlers()
        with self.assertRaises(utils_lib.HarnessInterrupted) as ctx:
            os.kill(os.getpid(), signal.SIGTERM)
        self.assertEqual(ctx.exception.signum, signal.SIGTERM)
        self.assertEqual(ctx.exception.exit_code, 143)
        self.assertIn('SIGTERM', str(ctx.exception))

    def test_sigquit_raises_harness_interrupted(self):
        utils_lib.install_signal_handlers()
        with self.assertRaises(utils_lib.HarnessInterrupted) as ctx:
            os.kill(os.getpid(), signal.SIGQUIT)
        self.assertEqual(ctx.exception.exit_code, 131)

    def test_interrupt_is_a_keyboard_interrupt(self):
        self.assertIsInstance(utils_lib.HarnessInterrupted(signal.SIGTERM), KeyboardInterrupt)

    def test_previous_handlers_restored(self):
        previous = utils_lib.install_signal_handlers()
        self.assertEqual(previous, self.original)
        self.assertNotEqual(signal.getsignal(signal.SIGTERM), self.original[signal.SIGTERM])

        utils_lib.restore_signal_handlers(previous)
        for sig, handler in self.original.items():
            self.assertEqual(signal.getsignal(sig), handler)


class TestConfigureLogging(unittest.TestCase):
    def setUp(self):
        root = logging.getLogger()
        saved_handlers = list(root.handlers)
        saved_level = root.level

        def _restore():
            for handler in list(root.handlers):
                root.removeHandler(handler)
                handler.close()
            for handler in saved_handlers:
                root.addHandler(handler)
            root.setLevel(saved_level)

        self.addCleanup(_restore)

    def test_log_file_directory_created(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = os.path.join(temp_dir, 'logs', 'nested', 'run.log')
            utils_lib.configure_logging('debug', log_file)
            logging.getLogger('fvharness.test').info('written to file')
            for handler in logging.getLogger().handlers:
                handler.flush()

            self.assertTrue(os.path.isfile(log_file))
            with open(log_file) as f:
                self.assertIn('written to file', f.read())
            self.assertEqual(logging.getLogger().level, logging.DEBUG)
            for handler in list(logging.getLogger().handlers):
                handler.close()

    def test_console_only(self):
        utils_lib.configure_logging('WARNING')
        handlers = logging.getLogger().handlers
        self.assertEqual(len(handlers), 1)
        self.assertIsInstance(handlers[0], logging.StreamHandler)
        self.assertEqual(logging.getLogger().level, logging.WARNING)


if __name__ == '__main__':
    unittest.main()
