from __future__ import annotations

import os

import aiohttp
import pytest
from asyncclick.testing import CliRunner

from hilink.credentials import Credentials
from hilink.deviceconfig import DeviceConfig

from .fakehilink import MOCK_PWD, MOCK_USER, MockHilinkDevice

MOCK_HOST = "127.0.0.1"


@pytest.fixture()
def credentials():
    return Credentials(MOCK_USER, MOCK_PWD)


@pytest.fixture()
def config():
    return DeviceConfig(MOCK_HOST)


@pytest.fixture()
def mock_device(mocker):
    """Return a fake device that answers every aiohttp request."""
    device = MockHilinkDevice(MOCK_HOST)
    mocker.patch.object(aiohttp.ClientSession, "request", side_effect=device.request)
    return device


@pytest.fixture()
def runner():
    """Runner fixture that unsets the HILINK_ environment variables for tests."""
    HILINK_VARS = {k: None for k, v in os.environ.items() if k.startswith("HILINK_")}
    runner = CliRunner(env=HILINK_VARS)

    return runner
