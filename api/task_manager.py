"""Task manager for tracking background refreshes"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from threading import Lock


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class TaskManager:
    """Keeps the status of fire-and-forget refreshes started by the API"""

    def __init__(self):
        self.tasks: Dict[str, dict] = {}
        self._lock = Lock()

    def create_task(self, task_type: str, description: str, owner: Optional[str] = None) -> str:
        """Create a new task and return its ID; owner is the requesting user"""
        task_id = str(uuid.uuid4())

        with self._lock:
            self.tasks[task_id] = {
                "id": task_id,
                "type": task_type,
                "owner": owner,
                "description": description,
                "status": "pending",
                "message": "Task created",
                "created_at": _now(),
                "updated_at": _now(),
                "completed_at": None,
                "error": None,
                "result": None,
            }

        return task_id

    def get_task(self, task_id: str) -> Optional[dict]:
        with self._lock:
            task = self.tasks.get(task_id)
            return dict(task) if task else None

    def update_task(self, task_id: str, **kwargs):
        with self._lock:
            if task_id in self.tasks:
                self.tasks[task_id].update(kwargs)
                self.tasks[task_id]["updated_at"] = _now()

    def complete_task(self, task_id: str, result: Any = None):
        self.update_task(
            task_id,
            status="completed",
            message="Task completed successfully",
            completed_at=_now(),
            result=result,
        )

    def fail_task(self, task_id: str, error: str):
        self.update_task(
            task_id,
            status="failed",
            message=f"Task failed: {error}",
            error=error,
            completed_at=_now(),
        )

    def counts(self) -> Dict[str, int]:
        with self._lock:
            running = len([t for t in self.tasks.values() if t["status"] in ("pending", "running")])
            return {"running": running, "total": len(self.tasks)}

    def cleanup_old_tasks(self, max_age_hours: int = 24) -> int:
        """Remove finished tasks older than max_age_hours"""
        cutoff = datetime.now(timezone.utc) - timedelta(hours=max_age_hours)

        with self._lock:
            to_remove = [
                task_id
                for task_id, task in self.tasks.items()
                if datetime.fromisoformat(task["created_at"]) < cutoff
                and task["status"] in ("completed", "failed")
            ]
            for task_id in to_remove:
                del self.tasks[task_id]

        return len(to_remove)
