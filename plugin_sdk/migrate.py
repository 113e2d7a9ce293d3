"""
Move an existing plugin checkout onto the installed SDK.

Plugins that vendored the SDK modules import them relatively
(`from ..sdk.interfaces import PrivatePluginInterface`). This rewrites such
imports to `from plugin_sdk import ...` and adds the requirement.

    python -m plugin_sdk.migrate ../plugins/my-plugin
"""
import logging
import re
import sys
from pathlib import Path
from typing import List, Sequence, Tuple

from . import __all__ as SDK_EXPORTS

logger = logging.getLogger(__name__)

REQUIREMENT = "plugin-sdk"
REQUIREMENT_LINE = f"{REQUIREMENT}>=1.0.0"

# path segments that mark a vendored copy of the SDK
SDK_MODULES = ("sdk", "plugin_sdk", "interfaces", "utils")

# single-line relative imports only; parenthesized imports are left for a manual pass
_RELATIVE_IMPORT = re.compile(
    r"^(?P<indent>[ \t]*)from\s+(?P<module>\.+[\w.]*)\s+import\s+(?P<names>[^()#\n]+?)[ \t]*(?P<comment>#.*)?$",
    re.MULTILINE,
)
_REQ_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)")


def _requirement_name(line: str) -> str:
    m = _REQ_NAME.match(line.split("#", 1)[0])
    return m.group(1).lower().replace("_", "-") if m else ""


def _is_sdk_module(module: str, sdk_modules: Sequence[str]) -> bool:
    return any(part in sdk_modules for part in module.lstrip(".").split(".") if part)


def rewrite_imports(source: str, sdk_modules: Sequence[str] = SDK_MODULES) -> Tuple[str, int]:
    """
    Return (new_source, number_of_rewritten_imports).

    Only imports from a module path with one of `sdk_modules` as a segment are
    touched, and only when every imported name is exported by plugin_sdk.
    """
    count = 0

    def repl(m: re.Match) -> str:
        nonlocal count
        if not _is_sdk_module(m.group("module"), sdk_modules):
            return m.group(0)
        names = [n.strip() for n in m.group("names").split(",") if n.strip()]
        imported = [re.split(r"\s+as\s+", n)[0] for n in names]
        if not names or any(name not in SDK_EXPORTS for name in imported):
            return m.group(0)
        count += 1
        comment = f"  {m.group('comment')}" if m.group("comment") else ""
        return f"{m.group('indent')}from plugin_sdk import {', '.join(names)}{comment}"

    return _RELATIVE_IMPORT.sub(repl, source), count


class PluginMigrator:
    def __init__(self, plugin_path, sdk_modules: Sequence[str] = SDK_MODULES):
        self.plugin_path = Path(plugin_path)
        self.sdk_modules = tuple(sdk_modules)
        self.changes: List[str] = []

    def migrate(self) -> List[str]:
        self.update_requirements()
        self.update_source_files()
        self.update_test_files()
        return self.changes

    def update_requirements(self) -> None:
        req_path = self.plugin_path / "requirements.txt"
        if not req_path.exists():
            req_path.write_text(REQUIREMENT_LINE + "\n", encoding="utf-8")
            self.changes.append("Created requirements.txt with SDK dependency")
            return

        lines = req_path.read_text(encoding="utf-8").splitlines()
        if any(_requirement_name(line) == REQUIREMENT for line in lines):
            return
        lines.append(REQUIREMENT_LINE)
        req_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        self.changes.append("Added SDK dependency to requirements.txt")

    def update_source_files(self) -> None:
        src = self.plugin_path / "src"
        if not src.is_dir():
            logger.info("No src directory found in %s", self.plugin_path)
            return
        for path in sorted(src.rglob("*.py")):
            self._rewrite(path)

    def update_test_files(self) -> None:
        tests = self.plugin_path / "tests"
        if not tests.is_dir():
            logger.info("No tests directory found in %s", self.plugin_path)
            return
        for path in sorted(tests.glob("test_*.py")):
            self._rewrite(path)

    def _rewrite(self, path: Path) -> None:
        source = path.read_text(encoding="utf-8")
        updated, n = rewrite_imports(source, self.sdk_modules)
        if n:
            path.write_text(updated, encoding="utf-8")
            self.changes.append(f"Updated imports in {path.relative_to(self.plugin_path).as_posix()}")


def main() -> None:
    if len(sys.argv) != 2:
        print("Usage: python -m plugin_sdk.migrate <plugin-path>")
        print("Example: python -m plugin_sdk.migrate ../plugins/my-plugin")
        raise SystemExit(1)

    plugin_path = Path(sys.argv[1])
    if not plugin_path.exists():
        print(f"Plugin path does not exist: {plugin_path}")
        raise SystemExit(1)

    print(f"Migrating plugin at: {plugin_path}")
    try:
        changes = PluginMigrator(plugin_path).migrate()
    except OSError as e:
        print(f"Migration failed: {e}")
        raise SystemExit(1)

    print("\n=== Migration Report ===")
    if not changes:
        print("No changes needed - plugin already uses the SDK")
    else:
        print("Changes made:")
        for change in changes:
            print(f"  - {change}")

    print("\nNext steps:")
    print("1. pip install -r requirements.txt")
    print("2. Run the plugin's tests")
    print("3. Fix any remaining relative SDK imports by hand (multi-line imports are skipped)")
    print("4. Commit the changes")


if __name__ == "__main__":
    main()
