"""
Convention Enforcement Tests.

Permanent tests that catch anti-patterns which import-based layer rules
cannot detect: frozen dataclass conventions, immutable collections,
silent exception swallowing, and interface contracts.
"""

import ast
import importlib
import inspect
from pathlib import Path

import pytest

SRC_ROOT = Path(__file__).parent.parent.parent / "src" / "phasegate"


def _frozen_flag(node: ast.ClassDef) -> bool | None:
    """None if not a dataclass, else whether it is frozen."""
    for decorator in node.decorator_list:
        if isinstance(decorator, ast.Name) and decorator.id == "dataclass":
            return False
        if isinstance(decorator, ast.Call):
            func = decorator.func
            if isinstance(func, ast.Name) and func.id == "dataclass":
                for kw in decorator.keywords:
                    if kw.arg == "frozen" and isinstance(kw.value, ast.Constant):
                        return bool(kw.value.value)
                return False
    return None


class TestFrozenDataclassConvention:
    """All domain dataclasses must be frozen."""

    @pytest.mark.parametrize("module", ["models.py", "events.py"])
    def test_domain_dataclasses_are_frozen(self, module):
        tree = ast.parse((SRC_ROOT / "domain" / module).read_text())
        violations = [
            node.name
            for node in ast.walk(tree)
            if isinstance(node, ast.ClassDef) and _frozen_flag(node) is False
        ]

        assert not violations, f"Domain dataclasses must be frozen. Violations: {violations}"

    def test_settings_are_frozen(self):
        tree = ast.parse((SRC_ROOT / "config.py").read_text())
        flags = {
            node.name: _frozen_flag(node)
            for node in ast.walk(tree)
            if isinstance(node, ast.ClassDef)
        }
        assert flags["WorkflowSettings"] is True


class TestImmutableCollections:
    """Frozen domain model fields should use tuple, not list."""

    def test_domain_models_use_tuples_not_lists(self):
        models_file = SRC_ROOT / "domain" / "models.py"
        source = models_file.read_text()
        tree = ast.parse(source)

        violations = []
        for node in ast.walk(tree):
            if not isinstance(node, ast.ClassDef) or not _frozen_flag(node):
                continue
            for item in node.body:
                if isinstance(item, ast.AnnAssign) and item.target:
                    target_name = getattr(item.target, "id", "?")
                    annotation_source = ast.get_source_segment(source, item.annotation)
                    if annotation_source and "list[" in annotation_source.lower():
                        violations.append(f"{node.name}.{target_name}: uses list[]")

        assert not violations, (
            "Frozen dataclass fields should use tuple, not list:\n"
            + "\n".join(f"  - {v}" for v in violations)
        )


class TestNoSilentExceptionSwallowing:
    """No bare 'except: pass' or 'except Exception: pass' in src/."""

    def test_no_bare_except_pass(self):
        violations = []

        for py_file in SRC_ROOT.rglob("*.py"):
            source = py_file.read_text()
            tree = ast.parse(source)

            for node in ast.walk(tree):
                if not isinstance(node, ast.ExceptHandler):
                    continue
                if node.type is None:
                    violations.append(f"{py_file.name}:{node.lineno}: bare except")
                    continue
                if len(node.body) == 1:
                    stmt = node.body[0]
                    is_pass = isinstance(stmt, ast.Pass)
                    is_ellipsis = (
                        isinstance(stmt, ast.Expr)
                        and isinstance(stmt.value, ast.Constant)
                        and stmt.value.value is ...
                    )
                    if is_pass or is_ellipsis:
                        handler_type = ast.get_source_segment(source, node.type) or ""
                        violations.append(
                            f"{py_file.name}:{node.lineno}: except {handler_type}: pass"
                        )

        assert not violations, "Silent exception swallowing found:\n" + "\n".join(
            f"  - {v}" for v in violations
        )


class TestInterfaceConventions:
    """Interface naming and contract conventions."""

    def test_all_ports_end_with_interface(self):
        """All ABCs in domain/interfaces.py must end with 'Interface'."""
        from phasegate.domain import interfaces

        abstract_classes = [
            name
            for name, obj in inspect.getmembers(interfaces, inspect.isclass)
            if inspect.isabstract(obj)
            and obj.__module__ == interfaces.__name__
            and not name.startswith("_")
        ]

        violations = [name for name in abstract_classes if not name.endswith("Interface")]

        assert abstract_classes
        assert not violations, f"Abstract classes should end with 'Interface': {violations}"

    def test_all_interface_methods_are_abstract(self):
        """Every public method on a port must be abstract."""
        from phasegate.domain import interfaces

        violations = []

        for name, cls in inspect.getmembers(interfaces, inspect.isclass):
            if not inspect.isabstract(cls) or not name.endswith("Interface"):
                continue

            for method_name, method in inspect.getmembers(cls, predicate=inspect.isfunction):
                if method_name.startswith("_"):
                    continue
                if not getattr(method, "__isabstractmethod__", False):
                    violations.append(f"{name}.{method_name}")

        assert not violations, f"Public interface methods must be abstract: {violations}"

    @pytest.mark.parametrize(
        ("interface_name", "impl_paths"),
        [
            (
                "PhaseStateStoreInterface",
                [
                    "phasegate.infrastructure.persistence.memory.InMemoryPhaseStateStore",
                    "phasegate.infrastructure.persistence.filesystem.FilesystemPhaseStateStore",
                ],
            ),
            (
                "PhaseEventStoreInterface",
                [
                    "phasegate.infrastructure.persistence.events.InMemoryPhaseEventStore",
                    "phasegate.infrastructure.persistence.events.FilesystemPhaseEventStore",
                ],
            ),
            (
                "StageGeneratorInterface",
                ["phasegate.infrastructure.generators.mock.MockStageGenerator"],
            ),
        ],
    )
    def test_implementations_satisfy_interfaces(self, interface_name, impl_paths):
        """All infrastructure implementations must implement all abstract methods."""
        from phasegate.domain import interfaces

        interface = getattr(interfaces, interface_name)
        abstract_methods = {
            name
            for name, method in inspect.getmembers(interface, predicate=inspect.isfunction)
            if getattr(method, "__isabstractmethod__", False)
        }

        for impl_path in impl_paths:
            module_name, class_name = impl_path.rsplit(".", 1)
            impl_cls = getattr(importlib.import_module(module_name), class_name)
            assert issubclass(impl_cls, interface)
            assert not inspect.isabstract(impl_cls), (
                f"{class_name} is missing methods: {impl_cls.__abstractmethods__}"
            )
            impl_methods = {
                name for name, _ in inspect.getmembers(impl_cls, predicate=inspect.isfunction)
            }
            missing = abstract_methods - impl_methods
            assert not missing, f"{class_name} is missing methods: {missing}"
