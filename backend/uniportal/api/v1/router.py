from fastapi import APIRouter

from uniportal.api.v1.endpoints import elections, students

api_router = APIRouter()


@api_router.get("/health", tags=["Health"])
async def health_check():
    """Simple health check endpoint for load balancer"""
    return {"status": "healthy", "service": "uniportal-backend"}


api_router.include_router(elections.router, prefix="/elections", tags=["Elections"])
api_router.include_router(students.router, prefix="/student", tags=["Students"])
