import sys

import docker

from .base import SubcommandPlugin
from fvharness.lib.docker_lib import ContainerManager
from fvharness.parsers.schemas import ConfigError, HarnessConfig


class CleanupPlugin(SubcommandPlugin):
    def get_name(self):
        return "cleanup"

    def get_order(self):
        return 1

    def get_parser(self, subparsers):
        parser = subparsers.add_parser(
            "cleanup", help="Force-remove the containers of the configured run (honours UNIQUE_SUFFIX)"
        )
        parser.set_defaults(_plugin=self)
        return parser

    def get_epilog(self):
        return """
Cleanup Commands:
  fvharness cleanup                          Remove k8sfv-etcd, k8sfv-apiserver, k8sfv-typha, k8sfv-felix
  UNIQUE_SUFFIX=-42 fvharness cleanup        Remove the containers of run '-42'"""

    def run(self, args):
        try:
            config = HarnessConfig.from_env()
        except ConfigError as e:
            print(f"Error: {e}")
            sys.exit(1)

        try:
            removed = ContainerManager(config).remove_all()
        except docker.errors.DockerException as e:
            print(f"Error talking to Docker: {e}")
            sys.exit(1)

        if removed:
            print(f"Removed {len(removed)} container(s): {', '.join(removed)}")
        else:
            print(f"No containers found for prefix {config.name_prefix}")
