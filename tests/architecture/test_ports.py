"""
Port Injection Tests.

Services take domain ports, never concrete adapters, and work with any
object that satisfies the port.
"""

import inspect
from unittest.mock import MagicMock

from phasegate.application.dependency_resolver import DependencyResolver
from phasegate.application.event_emitter import PhaseEventEmitter
from phasegate.application.router import CommandRouter
from phasegate.domain.interfaces import (
    PhaseEventStoreInterface,
    PhaseStateStoreInterface,
    StageGeneratorInterface,
)


class TestConstructorsTakePorts:
    """Type hints on service constructors reference interfaces."""

    def test_router_hints(self):
        annotations = inspect.signature(CommandRouter.__init__).parameters
        assert "PhaseStateStoreInterface" in str(annotations["store"].annotation)
        assert "StageGeneratorInterface" in str(annotations["generator"].annotation)
        assert "PhaseEventStoreInterface" in str(annotations["event_store"].annotation)

    def test_resolver_hints(self):
        annotations = inspect.signature(DependencyResolver.__init__).parameters
        assert "PhaseStateStoreInterface" in str(annotations["store"].annotation)


class TestServicesAcceptMocks:
    def test_router_with_mocked_ports(self):
        store = MagicMock(spec=PhaseStateStoreInterface)
        generator = MagicMock(spec=StageGeneratorInterface)

        router = CommandRouter(store, generator)
        result = router.handle("deploy", "06-test")

        assert result.error_kind == "ValidationError"
        store.load.assert_not_called()
        generator.generate.assert_not_called()

    def test_resolver_only_uses_port_methods(self):
        store = MagicMock(spec=PhaseStateStoreInterface)
        store.exists.return_value = False

        report = DependencyResolver(store).resolve("06-x", ["05-y"])

        assert report.missing == ("05-y",)
        store.exists.assert_called_once_with("05-y")

    def test_emitter_with_mocked_store(self):
        store = MagicMock(spec=PhaseEventStoreInterface)

        PhaseEventEmitter(store).stage_approved("06-test", "spec", 1, "alice")

        event = store.store_event.call_args.args[0]
        assert event.phase_id == "06-test"
