# src/core/commands/loader.py
"""Discovery of command modules.

Commands live as modules inside a package (``src.commands`` by default).
Modules directly in the package get the "general" category; modules in a
sub-package get the sub-package name as their category, so everything under
``src/commands/owner/`` is owner-only.

Each module exposes either a module-level ``command`` mapping or the
definition attributes (``name``, ``execute``, ...) directly.
"""

import importlib
import logging
import pkgutil
import sys
from types import ModuleType

from src.core.commands.models import Command
from src.core.commands.registry import CommandRegistry
from src.core.errors import CommandConflictError, CommandValidationError

logger = logging.getLogger(__name__)


class CommandLoader:
    """Loads command definitions from a package into a registry."""

    def __init__(self, registry: CommandRegistry, package: str = "src.commands") -> None:
        self.registry = registry
        self.package = package

    def load_all(self) -> int:
        """Clear the registry and load every command module in the package.

        Invalid definitions and duplicates are skipped with a warning.
        Loading never raises.

        Returns:
            Number of unique commands registered.
        """
        self.registry.clear()

        try:
            root = importlib.import_module(self.package)
        except Exception as e:
            logger.error("Failed to import commands package %s: %s", self.package, e)
            return 0

        for module_name, category in self._discover(root):
            module = self._import(module_name, fresh=False)
            if module is None:
                continue
            self._register_module(module, category)

        count = len(self.registry)
        logger.info(
            "Loaded %d commands in %d categories",
            count,
            len(self.registry.categories()),
        )
        return count

    def reload_all(self) -> int:
        """Re-import every command module and load them again."""
        prefix = self.package + "."
        for name in [n for n in sys.modules if n.startswith(prefix)]:
            del sys.modules[name]
        return self.load_all()

    def reload(self, name: str) -> Command | None:
        """Re-import the module a command came from and swap it in.

        If the module no longer defines a valid command, the old command is
        unregistered.

        Args:
            name: Command name or alias.

        Returns:
            The new Command, or None if it was unknown or removed.
        """
        current = self.registry.resolve(name)
        if current is None or not current.source:
            logger.warning("Cannot reload unknown command: %s", name)
            return None

        module = self._import(current.source, fresh=True)
        command = self._build(module, current.category) if module else None
        if command is None:
            self.registry.unregister(current.name)
            logger.warning("Command %s removed after failed reload", current.name)
            return None

        try:
            return self.registry.replace(command, previous=current.name)
        except CommandConflictError as e:
            logger.warning("Skipping reload of %s: %s", current.source, e)
            return None

    def _discover(self, root: ModuleType) -> list[tuple[str, str | None]]:
        """List (module name, category) pairs under the root package."""
        found: list[tuple[str, str | None]] = []
        root_path = getattr(root, "__path__", None)
        if root_path is None:
            return found

        for info in pkgutil.iter_modules(root_path, root.__name__ + "."):
            if info.ispkg:
                category = info.name.rsplit(".", 1)[-1]
                sub = self._import(info.name, fresh=False)
                if sub is None or not hasattr(sub, "__path__"):
                    continue
                for child in pkgutil.iter_modules(sub.__path__, info.name + "."):
                    if not child.ispkg:
                        found.append((child.name, category))
            else:
                found.append((info.name, None))
        return sorted(found)

    @staticmethod
    def _import(module_name: str, fresh: bool) -> ModuleType | None:
        try:
            if fresh and module_name in sys.modules:
                return importlib.reload(sys.modules[module_name])
            return importlib.import_module(module_name)
        except Exception as e:
            logger.error("Error loading command module %s: %s", module_name, e)
            return None

    @staticmethod
    def _build(module: ModuleType, category: str | None) -> Command | None:
        definition = getattr(module, "command", None)
        if definition is None:
            definition = module
        try:
            return Command.from_definition(
                definition, category=category, source=module.__name__
            )
        except CommandValidationError as e:
            logger.warning("Invalid command in %s: %s", module.__name__, e)
            return None

    def _register_module(self, module: ModuleType, category: str | None) -> None:
        command = self._build(module, category)
        if command is None:
            return
        try:
            self.registry.register(command)
        except CommandConflictError as e:
            logger.warning("Skipping command from %s: %s", module.__name__, e)
