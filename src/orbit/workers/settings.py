"""arq worker settings module.

Import path for arq CLI: arq orbit.workers.settings.WorkerSettings
"""

from __future__ import annotations

from orbit.workers.tasks import WorkerSettings

__all__ = ["WorkerSettings"]
