from fastapi import APIRouter

from clinicflow.api.v1.endpoints import auth
from clinicflow.api.v1.endpoints import appointments
from clinicflow.api.v1.endpoints import patients
from clinicflow.api.v1.endpoints import medical_records
from clinicflow.api.v1.endpoints import doctors
from clinicflow.api.v1.endpoints import clinics

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["appointments"])
api_router.include_router(patients.router, prefix="/patients", tags=["patients"])
api_router.include_router(medical_records.router, prefix="/medical-records", tags=["medical-records"])
api_router.include_router(doctors.router, prefix="/doctors", tags=["doctors"])
api_router.include_router(clinics.router, prefix="/clinics", tags=["clinics"])
