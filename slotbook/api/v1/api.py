from fastapi import APIRouter

from slotbook.api.v1.endpoints import scheduling

api_router = APIRouter()

# Scheduling endpoints
api_router.include_router(scheduling.router, prefix="/scheduling", tags=["scheduling"])
