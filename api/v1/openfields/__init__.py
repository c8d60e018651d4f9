"""OpenFields API routes"""

from fastapi import APIRouter
from . import fieldsets, fields, field_types, locations

router = APIRouter()

router.include_router(fieldsets.router, prefix="/fieldsets", tags=["Fieldsets"])
router.include_router(fields.router, tags=["Fields"])
router.include_router(field_types.router, prefix="/field-types", tags=["Field Types"])
router.include_router(locations.router, prefix="/locations", tags=["Locations"])
