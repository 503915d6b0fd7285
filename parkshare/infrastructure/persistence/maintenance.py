"""Scheduled sweeps: expire lapsed listings and close out finished bookings.

Meant to be run by an external scheduler (cron, systemd timer, k8s CronJob).
Both sweeps are idempotent, so overlapping runs are harmless.
"""
import asyncio
from datetime import datetime
from typing import Callable, Dict

from loguru import logger

from parkshare.application.repositories import AbstractUnitOfWork
from parkshare.application.services import AvailabilityWindowTracker, BookingService
from parkshare.shared.utils import utc_now


async def run_sweeps(
    uow_factory: Callable[[], AbstractUnitOfWork],
    clock: Callable[[], datetime] = utc_now,
) -> Dict[str, int]:
    expired = await AvailabilityWindowTracker(uow_factory, clock=clock).expire_stale_slots()
    completed = await BookingService(uow_factory, clock=clock).complete_finished_bookings()
    logger.info(f"Sweep finished: {expired} slot(s) expired, {completed} booking(s) completed")
    return {"expired_slots": expired, "completed_bookings": completed}


def main():
    from parkshare.infrastructure.persistence.database import uow_factory

    result = asyncio.run(run_sweeps(uow_factory))
    print(f"Expired {result['expired_slots']} slot(s), completed {result['completed_bookings']} booking(s)")


if __name__ == "__main__":
    main()
