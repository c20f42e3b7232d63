#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging
import os

from services.group_service import GroupService
from services.schedule_service import ScheduleService
from services.stats_service import StatsService
from services.task_service import TaskService
from services.timer_service import TimerService
from storage.db import Database
from storage.repos import StateStore
from ui.main_window import MainWindow

DEFAULT_DB_PATH = "breakbank.db"


def main():
    logging.basicConfig(
        level=os.environ.get("BREAKBANK_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    with Database(db_path=os.environ.get("BREAKBANK_DB", DEFAULT_DB_PATH)) as db:
        store = StateStore(db)

        task_service = TaskService(store)
        stats_service = StatsService(store)
        schedule_service = ScheduleService(store, task_service)
        timer_service = TimerService(
            store, task_service, stats_service, schedule_service, GroupService()
        )

        app = MainWindow(task_service, timer_service, stats_service)
        app.run()


if __name__ == "__main__":
    main()
