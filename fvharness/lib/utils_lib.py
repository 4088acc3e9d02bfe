'''
Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved. This notice is intended as a precaution against inadvertent publication and does not imply publication or any waiver of confidentiality.
The year included in the foregoing notice is the year of creation of the work.
All code contained here is Property of Advanced Micro Devices, Inc.
'''

import os
import signal
import logging

LOG_FORMAT = '%(asctime)s %(levelname)-8s %(name)s: %(message)s'


class HarnessInterrupted(KeyboardInterrupt):
    """Raised from a signal handler so the same teardown path as Ctrl-C runs."""

    def __init__(self, signum):
        self.signum = signum
        super().__init__(f'Interrupted by {signal.Signals(signum).name}')

    @property
    def exit_code(self):
        return 128 + self.signum


def configure_logging(level='INFO', log_file=None):
    """
    Send harness logs to stderr and, optionally, to log_file.

    The directory of log_file is created if needed.
    """
    handlers = [logging.StreamHandler()]
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=getattr(logging, level.upper()), format=LOG_FORMAT, handlers=handlers, force=True)


def install_signal_handlers(signals=(signal.SIGTERM, signal.SIGQUIT)):
    """
    Turn termination signals into HarnessInterrupted.

    SIGINT already raises KeyboardInterrupt. Returns the previous handlers
    keyed by signal number so callers can restore them.
    """
    def _handler(signum, frame):
        raise HarnessInterrupted(signum)

    previous = {}
    for sig in signals:
        previous[sig] = signal.signal(sig, _handler)
    return previous


def restore_signal_handlers(previous):
    for sig, handler in previous.items():
        signal.signal(sig, handler)
