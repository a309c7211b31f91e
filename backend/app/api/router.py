"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter

from app.api.routes import (
    auth,
    bookings,
    categories,
    enquiries,
    messages,
    payments,
    performers,
    refunds,
    reviews,
    testimonials,
    users,
    webhooks,
)
from app.core.config import get_settings

api_router = APIRouter(prefix=get_settings().API_PREFIX)
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(categories.router)
api_router.include_router(performers.router)
api_router.include_router(enquiries.router)
api_router.include_router(bookings.router)
api_router.include_router(payments.router)
api_router.include_router(refunds.router)
api_router.include_router(webhooks.router)
api_router.include_router(messages.router)
api_router.include_router(reviews.router)
api_router.include_router(testimonials.router)
