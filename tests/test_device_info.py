"""Tests for device property lookup and DeviceRecord labels."""

import asyncio

import pytest

from conftest import FakeADB, props
from core.device_info import (
    UNKNOWN,
    DeviceInfoFetcher,
    DeviceRecord,
    PropertyFetchError,
    record_from_properties,
)


def test_missing_properties_map_to_unknown():
    record = record_from_properties("A", {"ro.product.manufacturer": "Acme"})

    assert record.manufacturer == "Acme"
    assert record.model == UNKNOWN
    assert record.name == UNKNOWN
    assert record.sdk == UNKNOWN
    assert record.api == UNKNOWN
    assert record.state == "device"


def test_multiline_values_are_flattened():
    record = record_from_properties("A", props(manufacturer="Ac\nme", model="Pixel\r\n6\n"))

    assert record.manufacturer == "Acme"
    assert record.model == "Pixel6"
    for value in (record.manufacturer, record.name, record.model, record.api, record.sdk):
        assert "\n" not in value


def test_labels_and_device_info():
    record = record_from_properties("A", props())

    assert record.api_label == "Api: 14"
    assert record.sdk_label == "Sdk: 34"
    assert record.device_info == "Google oriole Pixel 6 Sdk: 34 Api: 14"
    assert record.display_name == "Google Pixel 6"
    assert str(record) == "Google Pixel 6 (A)"


def test_display_name_trims_mdns_serial():
    record = DeviceRecord(serial="adb-1A2B3C-xyz._adb-tls-connect._tcp.")
    assert record.display_name == "adb-1A2B3C-xyz"


def test_records_are_immutable():
    record = DeviceRecord(serial="A")
    with pytest.raises(AttributeError):
        record.model = "other"


@pytest.mark.asyncio
async def test_fetch_builds_record_from_device_properties():
    adb = FakeADB(properties={"A": props(model="Pixel\n7")})
    record = await DeviceInfoFetcher(adb).fetch("A")

    assert record.serial == "A"
    assert record.model == "Pixel7"
    assert adb.property_calls == ["A"]


@pytest.mark.asyncio
async def test_fetch_wraps_transport_failure():
    adb = FakeADB(failing={"gone"})
    with pytest.raises(PropertyFetchError):
        await DeviceInfoFetcher(adb).fetch("gone")


@pytest.mark.asyncio
async def test_fetch_wraps_timeout():
    class SlowADB(FakeADB):
        async def get_properties(self, serial, timeout=10):
            raise asyncio.TimeoutError()

    with pytest.raises(PropertyFetchError):
        await DeviceInfoFetcher(SlowADB()).fetch("A")
