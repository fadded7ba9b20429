from .base import SubcommandPlugin
from tracearchive.modeller.platform import available_platforms, load_platform


class PlatformsPlugin(SubcommandPlugin):
    def get_name(self):
        return "platforms"

    def get_order(self):
        return 1

    def get_parser(self, subparsers):
        parser = subparsers.add_parser("platforms", help="List platform type tables or show one hierarchy")
        parser.add_argument("platform", nargs="?", help="Optional: platform name or table path to describe")
        parser.set_defaults(_plugin=self)
        return parser

    def get_epilog(self):
        return """
Platform Commands:
  tracearchive platforms             List available platform type tables
  tracearchive platforms graphx      Show the graphx type hierarchy and rules"""

    def list_platforms(self):
        platforms = available_platforms()
        if not platforms:
            print("No platform type tables found.")
            return
        print("Available platforms:")
        for name, path in sorted(platforms.items()):
            print(f"  - {name} ({path})")

    def describe_platform(self, name):
        registry = load_platform(name)
        print(f"Platform: {registry.platform}")
        print(f"Root:     {registry.root_type}")
        print()
        self._print_type(registry, registry.root_type, depth=0)

    def _print_type(self, registry, type_name, depth):
        entry = registry.lookup(type_name)
        indent = "  " * depth
        print(f"{indent}{type_name}")
        for rule in entry.linking_rules:
            print(f"{indent}    link: {rule.describe()}")
        for rule in entry.visualization_rules:
            print(f"{indent}    show: {rule.name} = {rule.describe()}")
        for child in registry.child_types(type_name):
            # A type with several permitted parents is shown under its first one
            if registry.lookup(child).parents[0] == type_name:
                self._print_type(registry, child, depth + 1)

    def run(self, args):
        if not args.platform:
            self.list_platforms()
            return 0
        try:
            self.describe_platform(args.platform)
        except (KeyError, ValueError) as e:
            print(f"Error: {e}")
            return 1
        return 0
