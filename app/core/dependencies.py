"""
FastAPI dependencies that build the per-request service objects.
"""

from fastapi import Depends

from app.core.database import get_store
from app.services.assignments import AssignmentEngine
from app.services.bulletins import BulletinService
from app.services.classes import ClassManager
from app.services.dashboard import DashboardAggregator
from app.services.files import FileStore, get_file_store
from app.services.store import Store


def get_class_manager(store: Store = Depends(get_store)) -> ClassManager:
    return ClassManager(store)


def get_assignment_engine(
    store: Store = Depends(get_store),
    file_store: FileStore = Depends(get_file_store),
) -> AssignmentEngine:
    return AssignmentEngine(store, file_store)


def get_dashboard(store: Store = Depends(get_store)) -> DashboardAggregator:
    return DashboardAggregator(store)


def get_bulletins(store: Store = Depends(get_store)) -> BulletinService:
    return BulletinService(store)
