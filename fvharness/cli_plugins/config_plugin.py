import sys

import yaml

from .base import SubcommandPlugin
from fvharness.parsers.schemas import ConfigError, HarnessConfig


class ConfigPlugin(SubcommandPlugin):
    def get_name(self):
        return "config"

    def get_order(self):
        return 3

    def get_parser(self, subparsers):
        parser = subparsers.add_parser(
            "config", help="Print the configuration resolved from the environment"
        )
        parser.add_argument("--check", action="store_true", help="Also verify the CRDS manifest exists and parses")
        parser.set_defaults(_plugin=self)
        return parser

    def get_epilog(self):
        return """
Config Commands:
  fvharness config                           Show every option with its resolved value
  CRDS_FILE=my-crds.yaml fvharness config --check   Validate the manifest without starting containers"""

    def run(self, args):
        try:
            config = HarnessConfig.from_env()
        except ConfigError as e:
            print(f"Error: {e}")
            sys.exit(1)

        print(yaml.safe_dump(config.to_display_dict(), sort_keys=True, default_flow_style=False), end="")

        if args.check:
            try:
                kinds = config.check_manifest()
            except ConfigError as e:
                print(f"Error: {e}")
                sys.exit(1)
            print(f"CRDS manifest OK: {len(kinds)} resource(s) ({', '.join(kinds)})")
