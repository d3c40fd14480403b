"""Tests for authgate.watch — source change detection and refresh."""

import os
from pathlib import Path

from authgate.service import SecurityService
from authgate.watch import SourceWatcher


def _touch_later(path: Path, text: str) -> None:
    path.write_text(text)
    st = path.stat()
    os.utime(path, (st.st_atime + 10, st.st_mtime + 10))


class TestSourceWatcher:
    def test_first_check_records_only(self, security_config: dict) -> None:
        service = SecurityService(lambda: security_config)
        service.start()
        watcher = SourceWatcher(service.dispatcher, service.policies)
        assert watcher.check() == []

    def test_no_change_no_refresh(self, security_config: dict) -> None:
        service = SecurityService(lambda: security_config)
        service.start()
        watcher = SourceWatcher(service.dispatcher, service.policies)
        watcher.check()
        assert watcher.check() == []

    def test_changed_file_refreshes_its_policy(self, security_config: dict, group_file: Path) -> None:
        service = SecurityService(lambda: security_config)
        service.start()
        watcher = SourceWatcher(service.dispatcher, service.policies)
        watcher.check()

        _touch_later(group_file, "user9=group9\n")

        assert watcher.check() == ["REFRESH_USER_TO_GROUPS"]
        assert service.groups.get_groups("user9") == {"group9"}
        assert watcher.check() == []

    def test_deleted_file_counts_as_change(self, security_config: dict, password_file: Path) -> None:
        service = SecurityService(lambda: security_config)
        service.start()
        watcher = SourceWatcher(service.dispatcher, service.policies)
        watcher.check()

        password_file.unlink()

        assert watcher.check() == ["REFRESH_PASSWORD"]
        # failed reload keeps the previous passwords
        service.passwords.check_password("user5", "cccccc")
        assert watcher.check() == []

    def test_fixed_and_variable_share_identifier(
        self, security_config: dict, variable_file: Path
    ) -> None:
        service = SecurityService(lambda: security_config)
        service.start()
        watcher = SourceWatcher(service.dispatcher, service.policies)
        watcher.check()

        _touch_later(variable_file, "10.9.9.9:user9\n")

        assert watcher.check() == ["REFRESH_WHITE_LIST"]
        service.whitelist.check_access("10.9.9.9", "user9")
