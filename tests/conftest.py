"""Shared fixtures: in-memory debug bridge fakes and stand-in executables."""

import os
import stat
import sys
import textwrap
from collections import OrderedDict

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from utils.adb_wrapper import ADBError  # noqa: E402


class FakeADB:
    """Debug bridge double serving canned device lists, batches and props"""

    def __init__(self, devices=None, batches=None, properties=None, failing=(), track_error=None):
        self.adb_path = "adb"
        self.devices = devices or []
        self.batches = batches or []
        self.properties = properties or {}
        self.failing = set(failing)
        self.track_error = track_error
        self.property_calls = []
        self.tracker_closed = False

    async def get_devices(self):
        return [dict(device) for device in self.devices]

    async def get_properties(self, serial, timeout=10):
        self.property_calls.append(serial)
        if serial in self.failing:
            raise ADBError(f"device '{serial}' not found")
        return dict(self.properties.get(serial, {}))

    async def track_devices(self):
        try:
            if self.track_error is not None:
                raise self.track_error
            for batch in self.batches:
                yield OrderedDict(batch)
        finally:
            self.tracker_closed = True


class FakeBootstrap:
    def __init__(self, ok=True):
        self.ok = ok
        self.calls = 0

    async def ensure_running(self):
        self.calls += 1
        return self.ok


def props(manufacturer="Google", name="oriole", model="Pixel 6", release="14", sdk="34"):
    return {
        "ro.product.manufacturer": manufacturer,
        "ro.product.name": name,
        "ro.product.model": model,
        "ro.build.version.release": release,
        "ro.build.version.sdk": sdk,
    }


@pytest.fixture
def make_executable(tmp_path):
    """Write a Python script usable as a stand-in for scrcpy or adb"""
    def make(body, name="fake_tool"):
        path = tmp_path / name
        path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(body))
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)
    return make
