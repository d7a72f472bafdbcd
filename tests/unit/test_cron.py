"""Unit tests for the cron module."""

import asyncio
import logging
from typing import Any

import pytest

from sitefinder import cron


@pytest.fixture(name="numbers")
def fixture_numbers() -> list[int]:
    """Return a list containing the number 1."""
    return [1]


@pytest.fixture(name="condition")
def fixture_condition(numbers: list[int]) -> cron.Condition:
    """Return a condition for a cron job."""

    def should_run() -> bool:
        """Return True while there are no more than 2 items in numbers."""
        return len(numbers) <= 2

    return should_run


@pytest.fixture(name="task")
def fixture_task(numbers: list[int]) -> cron.Task:
    """Return a task for a cron job."""

    async def add_number() -> None:
        """Add a new number to the list. 2 is skipped with an error."""
        new_number = numbers[-1] + 1

        if new_number == 2:
            numbers.append(3)
            raise ValueError("Number 2 is not valid. Added 3 instead.")

        numbers.append(new_number)

    return add_number


@pytest.fixture(name="cron_job")
def fixture_cron_job(condition: cron.Condition, task: cron.Task) -> cron.Job:
    """Return a cron job."""
    return cron.Job(name="create_numbers", interval=0.1, condition=condition, task=task)


@pytest.mark.asyncio
async def test_cron(caplog: Any, cron_job: cron.Job, numbers: list[int]) -> None:
    """Test that the job ticks until its condition no longer holds."""
    caplog.set_level(logging.DEBUG, logger="sitefinder.cron")

    cron_job.start()
    await asyncio.sleep(0.5)
    await cron_job.stop()

    assert numbers == [1, 3, 4]
    assert caplog.record_tuples == [
        ("sitefinder.cron", logging.WARNING, "Cron: failed to run task create_numbers"),
        ("sitefinder.cron", logging.DEBUG, "Cron: ran task create_numbers"),
    ]
    error_message = caplog.records[0].__dict__["error message"]
    assert error_message == "Number 2 is not valid. Added 3 instead."


@pytest.mark.asyncio
async def test_start_and_stop(cron_job: cron.Job) -> None:
    """Test that start is idempotent and stop cancels the background task."""
    assert not cron_job.running

    cron_job.start()
    runner = cron_job._runner
    cron_job.start()

    assert cron_job.running
    assert cron_job._runner is runner

    await cron_job.stop()

    assert not cron_job.running
    assert runner.cancelled()
    await cron_job.stop()
