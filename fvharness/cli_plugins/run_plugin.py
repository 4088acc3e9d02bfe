import sys
import logging

import docker

from .base import SubcommandPlugin
from fvharness.lib.utils_lib import configure_logging, install_signal_handlers, restore_signal_handlers
from fvharness.parsers.schemas import ConfigError, HarnessConfig
from fvharness.runners.k8sfv import K8sfvRunner

log = logging.getLogger(__name__)


class RunPlugin(SubcommandPlugin):
    def get_name(self):
        return "run"

    def get_order(self):
        return 0

    def get_parser(self, subparsers):
        parser = subparsers.add_parser("run", help="Provision the containers and run the k8sfv tests")
        parser.add_argument(
            "--log-level",
            default="INFO",
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            help="Level of harness messages to display (default: INFO)",
        )
        parser.add_argument("--log-file", help="Also write harness logs to this file")
        parser.set_defaults(_plugin=self)
        return parser

    def get_epilog(self):
        return """
Run Commands:
  fvharness                                        Run with the defaults
  fvharness run --log-level DEBUG                  Run with debug logging
  GINKGO_FOCUS='Pod' fvharness run                 Only run specs matching 'Pod'
  JUST_A_MINUTE=false CLEANUP=true fvharness run   Full suite, remove containers afterwards
  UNIQUE_SUFFIX=-$BUILD_ID fvharness run           Isolate concurrent runs"""

    def run(self, args):
        configure_logging(args.log_level, args.log_file)
        sys.exit(self.run_harness())

    def run_harness(self, environ=None):
        """Resolve configuration, run the harness and return the process exit status."""
        try:
            config = HarnessConfig.from_env(environ)
            kinds = config.check_manifest()
        except ConfigError as e:
            log.error(str(e))
            return 1
        log.info(f"CRDS manifest {config.crds_path} declares: {', '.join(kinds)}")

        try:
            runner = K8sfvRunner(config)
        except docker.errors.DockerException as e:
            log.error(f"Cannot connect to Docker: {e}")
            return 1

        previous = install_signal_handlers()
        try:
            result = runner.execute()
        except KeyboardInterrupt as e:
            exit_code = getattr(e, "exit_code", 130)
            log.error(f"Harness interrupted ({str(e) or 'SIGINT'}), exiting with status {exit_code}")
            return exit_code
        finally:
            restore_signal_handlers(previous)

        if result.error_message:
            log.error(result.error_message)
        log.info(f"Harness finished in {result.duration_seconds:.1f}s with status {result.final_exit_code}")
        return result.final_exit_code
