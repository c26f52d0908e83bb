"""
Main API router that includes all route modules.
"""
from fastapi import APIRouter
from ambag.api.routes import users, groups, expenses, settlements, balances

api_router = APIRouter()

# Include all route modules
api_router.include_router(users.router)
api_router.include_router(groups.router)
api_router.include_router(expenses.router)
api_router.include_router(settlements.router)
api_router.include_router(balances.router)
