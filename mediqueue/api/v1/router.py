"""API v1 router configuration."""

from fastapi import APIRouter

from mediqueue.api.v1.endpoints import doctors, health, patients, queue_items, queues

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(patients.router, prefix="/patients", tags=["Patients"])
api_router.include_router(doctors.router, prefix="/doctors", tags=["Doctors"])
api_router.include_router(queues.router, prefix="/queues", tags=["Queues"])
api_router.include_router(queue_items.router, prefix="/queue-items", tags=["Queue Items"])
