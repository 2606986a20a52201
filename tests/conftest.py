import os
import sys
from datetime import datetime, timedelta, timezone

# Ensure project root is on sys.path so tests can import the `pistats` package
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from pistats import create_app
from pistats.config import UpdaterConfig
from pistats.models import Snapshot, MemoryInfo, CpuInfo
from pistats.updater import StatsUpdater

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_snapshot(used_mb=None, total_mb=None, cpu=None, seconds=0, memory=True):
    return Snapshot(
        cpu=CpuInfo(usage_percent=cpu),
        memory=MemoryInfo(used_mb=used_mb, total_mb=total_mb) if memory else None,
        collection_time=T0 + timedelta(seconds=seconds),
    )


class ScriptedCollector:
    """Collector stand-in returning memory readings in order, recording each call."""

    def __init__(self, used_values):
        self.used_values = list(used_values)
        self.calls = []

    def __call__(self, sample_duration):
        self.calls.append(sample_duration)
        n = len(self.calls)
        return make_snapshot(used_mb=self.used_values[n - 1], seconds=n)


@pytest.fixture
def updater_config():
    return UpdaterConfig(
        cpu_sample_duration=2,
        update_period=10,
        history_capacity=5,
        consolidation_limit=3,
    )


@pytest.fixture
def client(updater_config):
    updater = StatsUpdater(updater_config, collector=ScriptedCollector([100, 200, 300, 400]))
    app = create_app({"TESTING": True}, updater=updater)
    with app.test_client() as client:
        client.updater = updater
        yield client
