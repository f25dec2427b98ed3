"""Tests for the reportflow-worker entry point."""

import pytest

from reportflow.worker_cli import IN_PROCESS_QUEUE_MESSAGE, main, run_worker


def test_local_flag_is_not_accepted():
    with pytest.raises(SystemExit) as exc_info:
        main(["--local"])
    assert exc_info.value.code == 2


@pytest.mark.asyncio
async def test_worker_refuses_local_mode(monkeypatch):
    monkeypatch.setenv("REPORTFLOW_LOCAL_MODE", "1")
    with pytest.raises(SystemExit) as exc_info:
        await run_worker()
    assert exc_info.value.code == IN_PROCESS_QUEUE_MESSAGE


@pytest.mark.asyncio
async def test_worker_refuses_memory_queue(monkeypatch):
    monkeypatch.setenv("REPORTFLOW_LOCAL_MODE", "0")
    monkeypatch.setenv("REPORTFLOW_QUEUE_BACKEND", "memory")
    with pytest.raises(SystemExit) as exc_info:
        await run_worker()
    assert exc_info.value.code == IN_PROCESS_QUEUE_MESSAGE
