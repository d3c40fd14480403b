"""Shared fixtures: source files in the formats each policy reads."""

import hashlib
from pathlib import Path

import pytest


def md5_hex(password: str) -> str:
    return hashlib.md5(password.encode("utf-8")).hexdigest()


@pytest.fixture
def group_file(tmp_path: Path) -> Path:
    path = tmp_path / "user2groups.txt"
    path.write_text(
        "# user=group1,group2\n"
        "user1\n"
        "user2=group1\n"
        "user3=group2,group3\n"
    )
    return path


@pytest.fixture
def fixed_file(tmp_path: Path) -> Path:
    path = tmp_path / "fixedwhitelist"
    path.write_text(
        "192.168.1.1\n"
        "# 192.168.1.100\n"
    )
    return path


@pytest.fixture
def variable_file(tmp_path: Path) -> Path:
    path = tmp_path / "variablewhitelist"
    path.write_text(
        "192.168.1.2:user1,user2\n"
        "192.168.1.3:user3\n"
        "# 192.168.1.200:user4\n"
    )
    return path


@pytest.fixture
def password_file(tmp_path: Path) -> Path:
    path = tmp_path / "password.txt"
    path.write_text(
        f"# user1:{md5_hex('aaaaaa')}:true\n"
        "user2:true\n"
        f"user3:{md5_hex('bbbbbb')}:true:extra\n"
        "user4:null:true\n"
        f"user5:{md5_hex('cccccc')}:true\n"
        f"user6:{md5_hex('eeeeee')}:false\n"
        "user7::true\n"
        "user8:null:false\n"
    )
    return path


@pytest.fixture
def security_config(
    group_file: Path, fixed_file: Path, variable_file: Path, password_file: Path
) -> dict:
    return {
        "server": {"port": 8082, "trusted_proxies": ["127.0.0.1"]},
        "security": {
            "group_mapping": {"file": str(group_file)},
            "whitelist": {
                "enabled": True,
                "fixed_file": str(fixed_file),
                "variable_file": str(variable_file),
            },
            "password": {"enabled": True, "file": str(password_file)},
        },
        "admin": {"poll_interval_seconds": 0},
        "logging": {"level": "INFO"},
    }
