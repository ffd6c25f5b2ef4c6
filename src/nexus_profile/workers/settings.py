"""arq worker settings module.

Import path for arq CLI: arq nexus_profile.workers.settings.WorkerSettings
"""

from __future__ import annotations

from nexus_profile.badges.worker import WorkerSettings

__all__ = ["WorkerSettings"]
