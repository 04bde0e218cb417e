from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
from typer.testing import CliRunner

from cli.app import app
from cli.render import bucket_series


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.device_calls: List[bool] = []
        self.savings_calls: List[tuple] = []
        self.chunk_calls: List[tuple] = []
        self.savings_payload: Dict[str, Any] = {
            "totalCarbon": 11.0,
            "totalDiesel": 12.0,
            "savingsData": [
                {
                    "device_id": 1,
                    "timestamp": "2023-01-10T08:00:00",
                    "device_timestamp": None,
                    "carbon_saved": 1.0,
                    "fuel_saved": 2.0,
                },
                {
                    "device_id": 1,
                    "timestamp": "2023-02-10T08:00:00",
                    "device_timestamp": None,
                    "carbon_saved": 10.0,
                    "fuel_saved": 10.0,
                },
            ],
        }
        self.chunks: List[Dict[str, Any]] = [
            {"start": "2023-01-06T00:00:00", "end": "2023-01-31T23:59:59.999000"},
            {"start": "2023-02-01T00:00:00", "end": "2023-02-20T00:00:00"},
        ]
        self.closed = False

    def list_devices(self, include_savings: bool = False) -> List[Dict[str, Any]]:
        self.device_calls.append(include_savings)
        device: Dict[str, Any] = {"id": 1, "name": "advenio", "timezone": "Pacific/Chuuk"}
        if include_savings:
            device.update(carbon=11.0, diesel=12.0)
        return [device]

    def get_savings(
        self,
        device_id: int,
        start: Optional[str] = None,
        end: Optional[str] = None,
        resolution: Optional[str] = None,
    ) -> Dict[str, Any]:
        self.savings_calls.append((device_id, start, end, resolution))
        return self.savings_payload

    def get_chunks(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None,
        resolution: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        self.chunk_calls.append((start, end, resolution))
        return self.chunks

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def stub(monkeypatch) -> StubClient:
    client = StubClient(config=None)

    def factory(config):
        client.config = config
        return client

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return client


def test_devices_with_savings(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["devices", "--savings"])

    assert result.exit_code == 0
    assert "advenio" in result.stdout
    assert "carbon=11.0 diesel=12.0" in result.stdout
    assert stub.device_calls == [True]
    assert stub.closed is True


def test_savings_without_series(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["savings", "1", "--start", "2023-01-06", "-r", "week"])

    assert result.exit_code == 0
    assert "total_carbon: 11.0" in result.stdout
    assert "records_in_window: 2" in result.stdout
    assert stub.savings_calls == [(1, "2023-01-06", None, "week")]
    assert not stub.chunk_calls


def test_savings_with_series(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(
        app, ["savings", "1", "--start", "2023-01-06", "--end", "2023-02-20", "--series"]
    )

    assert result.exit_code == 0
    assert "Series" in result.stdout
    assert "carbon=1.0 diesel=2.0" in result.stdout
    assert "carbon=10.0 diesel=10.0" in result.stdout
    assert stub.chunk_calls == [("2023-01-06", "2023-02-20", None)]


def test_chunks_command_uses_base_url(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(
        app, ["--base-url", "http://savings.test/", "chunks", "--start", "2023-01-06"]
    )

    assert result.exit_code == 0
    assert "2023-01-06T00:00:00 -> 2023-01-31T23:59:59.999000" in result.stdout
    assert stub.config.base_url == "http://savings.test"


def test_bucket_series_sums_records_per_chunk() -> None:
    chunks = [
        {"start": "2023-01-01T00:00:00", "end": "2023-01-31T23:59:59.999000"},
        {"start": "2023-02-01T00:00:00", "end": "2023-02-28T23:59:59.999000"},
        {"start": "2023-03-01T00:00:00", "end": "2023-03-05T00:00:00"},
    ]
    records = [
        {"timestamp": "2023-01-31T23:59:59.999000", "carbon_saved": 1, "fuel_saved": 2},
        {"timestamp": "2023-02-01T00:00:00", "carbon_saved": 3, "fuel_saved": 4},
        {"timestamp": "2023-02-14T12:00:00", "carbon_saved": 5, "fuel_saved": 6},
    ]

    series = bucket_series(chunks, records)

    assert [(point["carbon"], point["diesel"]) for point in series] == [
        (1.0, 2.0),
        (8.0, 10.0),
        (0.0, 0.0),
    ]
