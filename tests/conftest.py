"""Shared test fixtures."""

from __future__ import annotations

import copy
import textwrap

import pytest

DOMAIN_XML = textwrap.dedent(
    """\
    <domain type="kvm">
      <name>vm1</name>
      <memory unit="KiB">2048</memory>
      <vcpu>2</vcpu>
      <devices>
        <disk type="file" device="disk">
          <source file="/var/lib/libvirt/images/vm1.qcow2"/>
        </disk>
        <disk type="file" device="cdrom"/>
      </devices>
    </domain>
    """
)

DOMAIN_DATA = {
    "domain": {
        "@type": "kvm",
        "name": "vm1",
        "memory": {"@unit": "KiB", "#text": 2048},
        "vcpu": 2,
        "devices": {
            "disk": [
                {
                    "@type": "file",
                    "@device": "disk",
                    "source": {"@file": "/var/lib/libvirt/images/vm1.qcow2"},
                },
                {"@type": "file", "@device": "cdrom"},
            ]
        },
    }
}


@pytest.fixture
def domain_xml() -> str:
    return DOMAIN_XML


@pytest.fixture
def domain_data() -> dict:
    return copy.deepcopy(DOMAIN_DATA)


@pytest.fixture
def work_dir(tmp_path):
    return tmp_path / ".virshle" / "tmp"


@pytest.fixture
def in_tmp(tmp_path, monkeypatch):
    """Run the test from inside tmp_path so relative work dirs land there."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


# Every environment variable parse_env() reads.
_PARSE_ENV_VARS = [
    "VIRSHLE_VERBOSITY",
    "VIRSHLE_WORK_DIR",
    "EDITOR",
    "VIRSH",
    "VIRT_XML_VALIDATE",
    "LIBVIRT_URI",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Clear all environment variables that parse_env() reads."""
    for key in _PARSE_ENV_VARS:
        monkeypatch.delenv(key, raising=False)
