"""FastAPI dependencies: the inventory store and the interaction advisor.

Both are built once in the app lifespan and kept on `app.state`; tests
replace them through `app.dependency_overrides`.
"""
from fastapi import Request

from trustmeds.services.advisory_service import InteractionAdvisor
from trustmeds.store.catalog import InventoryStore


def get_store(request: Request) -> InventoryStore:
    return request.app.state.store


def get_advisor(request: Request) -> InteractionAdvisor:
    return request.app.state.advisor
