"""API router for v1 endpoints."""

from fastapi import APIRouter

from optigence.api import calendar, extract, intent

router = APIRouter()

# Availability and slot proposals
router.include_router(calendar.router)

# Text triage helpers
router.include_router(intent.router)
router.include_router(extract.router)
