from fastapi import APIRouter

from tenantcare.api.routes import auth, clinics

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(clinics.router, prefix="/clinics", tags=["clinics"])
api_router.include_router(clinics.profile_router, prefix="/clinic", tags=["clinic"])
