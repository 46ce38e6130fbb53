"""
main.py

This is the main entry point of the FastAPI application.
Here we create the FastAPI app and register all API routes.

This file does NOT contain business logic.
It only wires everything together.
"""

import logging

from fastapi import FastAPI

# Import API routers
from app.api.ocr import router as ocr_router
from app.api.health import router as health_router
from app.api.offers import router as offers_router
from app.config import LOG_LEVEL
from app.services.offer_parser import get_offer_parser


def create_app() -> FastAPI:
    """
    Creates and returns the FastAPI application instance.
    This function helps keep the app creation clean and testable.
    """
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    # Load the parser vocabularies now so a broken config fails at startup
    get_offer_parser()

    app = FastAPI(
        title="Flyer Offers Service",
        description="OCR for promotion flyer photos and extraction of day, merchant, discount and card",
        version="1.0.0"
    )

    # Register API routes
    app.include_router(health_router, prefix="/health", tags=["Health"])
    app.include_router(ocr_router, prefix="/ocr", tags=["OCR"])
    app.include_router(offers_router, prefix="/offers", tags=["Offers"])

    return app


# Create the FastAPI app instance
app = create_app()
