"""API routes."""

from fastapi import APIRouter

from uniformtrack.api.routes import batches, distributions, reports, schools, students, uniforms

api_router = APIRouter()

api_router.include_router(schools.router, prefix="/schools", tags=["schools"])
api_router.include_router(students.router, prefix="/students", tags=["students"])
api_router.include_router(batches.router, prefix="/batches", tags=["batches", "stock"])
api_router.include_router(uniforms.router, prefix="/uniforms", tags=["uniforms"])
api_router.include_router(distributions.router, prefix="/distributions", tags=["distributions"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
