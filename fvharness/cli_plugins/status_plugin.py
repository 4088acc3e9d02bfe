import sys

import docker

from .base import SubcommandPlugin
from fvharness.lib.docker_lib import ContainerManager
from fvharness.parsers.schemas import ConfigError, HarnessConfig


class StatusPlugin(SubcommandPlugin):
    def get_name(self):
        return "status"

    def get_order(self):
        return 2

    def get_parser(self, subparsers):
        parser = subparsers.add_parser("status", help="List the containers of the configured run")
        parser.set_defaults(_plugin=self)
        return parser

    def get_epilog(self):
        return """
Status Commands:
  fvharness status                           Show state of the harness containers"""

    def run(self, args):
        try:
            config = HarnessConfig.from_env()
            rows = ContainerManager(config).list_run_containers()
        except ConfigError as e:
            print(f"Error: {e}")
            sys.exit(1)
        except docker.errors.DockerException as e:
            print(f"Error talking to Docker: {e}")
            sys.exit(1)

        if not rows:
            print(f"No containers found for prefix {config.name_prefix}")
            return

        print(f"Containers for prefix {config.name_prefix}:")
        for row in rows:
            print(f"  {row['name']:<32} {row['status']:<12} {row['image']}")
