from unittest.mock import patch

import pytest
from crontab import CronTab

from core.cron import JOB_COMMENT, CronManager


@pytest.fixture
def manager():
    cron = CronTab(tab="")
    with patch.object(cron, "write"):
        yield CronManager(cron)


def test_install_refresh_job(manager):
    assert manager.install_refresh_job("*/5 * * * *")

    job = manager.get_refresh_job()
    assert job["schedule"] == "*/5 * * * *"
    assert job["command"].endswith("main.py refresh --trigger cron")
    assert job["enabled"]


def test_install_replaces_existing_job(manager):
    manager.install_refresh_job("*/5 * * * *")
    manager.install_refresh_job("0 * * * *")

    assert len(list(manager.cron.find_comment(JOB_COMMENT))) == 1
    assert manager.get_refresh_job()["schedule"] == "0 * * * *"

    manager.install_refresh_job("0 0 * * *")
    assert manager.get_refresh_job()["schedule"] == "0 0 * * *"


def test_install_carries_data_dir(manager, data_dir):
    manager.install_refresh_job()

    assert manager.get_refresh_job()["command"].startswith(f"R2DASH_DATA_DIR={data_dir} ")


def test_invalid_schedule_rejected(manager):
    with pytest.raises(ValueError):
        manager.install_refresh_job("not a schedule")

    assert manager.get_refresh_job() is None


def test_remove_refresh_job(manager):
    assert not manager.remove_refresh_job()

    manager.install_refresh_job()
    assert manager.remove_refresh_job()
    assert manager.get_refresh_job() is None
