"""Tests for authgate.service — startup, refresh routing, shutdown."""

import copy
import threading
from pathlib import Path

import pytest

from authgate.errors import AuthenticationDenied, AuthorizationDenied
from authgate.service import SecurityService


class TestSecurityService:
    def test_start_loads_all_policies(self, security_config: dict) -> None:
        service = SecurityService(lambda: security_config)
        service.start()
        assert service.groups.get_groups("user3") == {"group2", "group3"}
        assert service.whitelist.enabled
        assert service.passwords.enabled
        assert service.dispatcher.identifiers() == [
            "REFRESH_PASSWORD",
            "REFRESH_USER_TO_GROUPS",
            "REFRESH_WHITE_LIST",
        ]

    def test_start_with_defaults_does_not_raise(self) -> None:
        service = SecurityService(lambda: {})
        service.start()
        assert service.authenticate("10.0.0.1", "alice", None) == frozenset()

    def test_authenticate(self, security_config: dict) -> None:
        service = SecurityService(lambda: security_config)
        service.start()
        assert service.authenticate("192.168.1.1", "user5", "cccccc") == frozenset()
        with pytest.raises(AuthorizationDenied):
            service.authenticate("192.168.1.99", "user5", "cccccc")
        with pytest.raises(AuthenticationDenied):
            service.authenticate("192.168.1.1", "user5", "dddddd")

    def test_refresh_rereads_configuration(self, security_config: dict) -> None:
        current = {"config": security_config}
        service = SecurityService(lambda: current["config"])
        service.start()

        disabled = copy.deepcopy(security_config)
        disabled["security"]["password"]["enabled"] = False
        current["config"] = disabled

        assert service.refresh("REFRESH_PASSWORD").ok
        assert not service.passwords.enabled
        service.passwords.check_password("nobody", None)
        # other policies untouched
        assert service.whitelist.enabled

    def test_refresh_failure_keeps_serving(self, security_config: dict, password_file: Path) -> None:
        service = SecurityService(lambda: security_config)
        service.start()
        password_file.unlink()

        resp = service.refresh("REFRESH_PASSWORD")

        assert resp.status == -1
        assert str(password_file) in resp.message
        service.passwords.check_password("user5", "cccccc")

    def test_refresh_unknown(self, security_config: dict) -> None:
        service = SecurityService(lambda: security_config)
        service.start()
        assert service.refresh("REFRESH_BOGUS").message == "Invalid identifier: REFRESH_BOGUS"

    def test_independent_instances(self, security_config: dict) -> None:
        a = SecurityService(lambda: security_config)
        b = SecurityService(lambda: {})
        a.start()
        b.start()
        assert a.groups.get_groups("user2") == {"group1"}
        assert b.groups.get_groups("user2") == frozenset()

    def test_shutdown(self, security_config: dict) -> None:
        service = SecurityService(lambda: security_config)
        service.start()
        service.shutdown()
        assert service.dispatcher.identifiers() == []
        assert service.groups.get_groups("user2") == frozenset()
        service.authenticate("1.2.3.4", "anyone", None)

    def test_shutdown_waits_for_refresh_in_flight(self, security_config: dict) -> None:
        entered = threading.Event()
        release = threading.Event()
        blocking = {"on": False}

        def loader() -> dict:
            if blocking["on"]:
                entered.set()
                release.wait(timeout=5)
            return security_config

        service = SecurityService(loader)
        service.start()
        blocking["on"] = True

        refresher = threading.Thread(target=service.refresh, args=("REFRESH_USER_TO_GROUPS",))
        refresher.start()
        assert entered.wait(timeout=5)

        stopper = threading.Thread(target=service.shutdown)
        stopper.start()
        stopper.join(timeout=0.1)
        assert stopper.is_alive()

        release.set()
        refresher.join()
        stopper.join()
        # the refresh finished first, so shutdown had the last word
        assert service.groups.get_groups("user2") == frozenset()
        assert service.dispatcher.identifiers() == []
