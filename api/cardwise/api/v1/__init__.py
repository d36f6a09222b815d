"""
API v1 router aggregation.
"""
from fastapi import APIRouter
from cardwise.api.v1.endpoints import cards, labels, users

api_router = APIRouter()

# Each router defines its own prefix
api_router.include_router(cards.router)
api_router.include_router(labels.router)
api_router.include_router(users.router)
