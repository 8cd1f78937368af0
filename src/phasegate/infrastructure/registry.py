"""
Stage generator lookup by name.

Generators are discovered through the ``phasegate.generators`` entry point group.
External packages register theirs in pyproject.toml:

    [project.entry-points."phasegate.generators"]
    TemplateGenerator = "mypackage.generators:TemplateGenerator"
"""

import warnings
from importlib.metadata import entry_points
from typing import Any

from phasegate.domain.interfaces import StageGeneratorInterface

ENTRY_POINT_GROUP = "phasegate.generators"


class StageGeneratorRegistry:
    """
    Name to generator class mapping for one router.

    Entry points are read the first time a name is looked up; classes
    registered by hand take precedence over them.
    """

    def __init__(self) -> None:
        self._generators: dict[str, Any] = {}
        self._loaded = False

    def _load_entry_points(self) -> None:
        if self._loaded:
            return
        for ep in entry_points(group=ENTRY_POINT_GROUP):
            if ep.name in self._generators:
                continue
            try:
                self._generators[ep.name] = ep.load()
            except (ImportError, AttributeError) as e:
                warnings.warn(
                    f"Failed to load generator '{ep.name}' from entry point: {e}",
                    stacklevel=2,
                )
        self._loaded = True

    def register(self, name: str, generator_class: type[StageGeneratorInterface]) -> None:
        self._generators[name] = generator_class

    def available(self) -> list[str]:
        self._load_entry_points()
        return sorted(self._generators)

    def create(self, name: str, **config: Any) -> StageGeneratorInterface:
        """
        Create a generator instance by name.

        Raises:
            KeyError: If no generator has that name
            TypeError: If config doesn't match the constructor, or the
                created object is not a StageGeneratorInterface
        """
        self._load_entry_points()
        if name not in self._generators:
            available = ", ".join(sorted(self._generators)) or "(none)"
            raise KeyError(f"Generator '{name}' not found. Available generators: {available}")
        generator = self._generators[name](**config)
        if not isinstance(generator, StageGeneratorInterface):
            raise TypeError(
                f"'{name}' created {type(generator).__name__}, "
                "which does not implement StageGeneratorInterface"
            )
        return generator
