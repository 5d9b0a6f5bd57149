import os
import sys
from pathlib import Path
from typing import Dict, Optional, Any

from crontab import CronTab

PYTHON_EXEC = sys.executable
# core/cron.py -> project root -> main.py
MAIN_SCRIPT = str(Path(__file__).resolve().parent.parent / "main.py")
JOB_COMMENT = "r2dash-refresh"


class CronManager:
    """Installs the periodic global refresh as a user crontab entry"""

    def __init__(self, cron: Optional[CronTab] = None):
        self.cron = cron if cron is not None else CronTab(user=True)

    def get_refresh_job(self) -> Optional[Dict[str, Any]]:
        for job in self.cron.find_comment(JOB_COMMENT):
            return {
                "schedule": job.slices.render(specials=False),
                "command": job.command,
                "enabled": job.is_enabled(),
            }
        return None

    def install_refresh_job(self, schedule: str = "*/10 * * * *") -> bool:
        # Only one refresh job per user crontab
        self.cron.remove_all(comment=JOB_COMMENT)

        # Cron runs with a bare environment, carry the data dir over
        env_prefix = ""
        if os.environ.get("R2DASH_DATA_DIR"):
            env_prefix = f"R2DASH_DATA_DIR={os.environ['R2DASH_DATA_DIR']} "

        command = f"{env_prefix}{PYTHON_EXEC} {MAIN_SCRIPT} refresh --trigger cron"
        job = self.cron.new(command=command, comment=JOB_COMMENT)
        try:
            job.setall(schedule)
        except (KeyError, ValueError) as e:
            self.cron.remove(job)
            raise ValueError(f"Invalid cron schedule: {schedule}") from e
        if not job.is_valid():
            self.cron.remove(job)
            raise ValueError(f"Invalid cron schedule: {schedule}")
        self.cron.write()
        return True

    def remove_refresh_job(self) -> bool:
        removed = self.cron.remove_all(comment=JOB_COMMENT)
        self.cron.write()
        return bool(removed)
