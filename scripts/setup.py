#!/usr/bin/env python3
"""Setup script for the tourbook API: migrate the database and seed a sample tour."""

import asyncio
import logging
import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command  # noqa: E402
from alembic.config import Config  # noqa: E402
from sqlalchemy import func, select  # noqa: E402

from tourbook.core.database import async_session_factory, close_db  # noqa: E402
from tourbook.core.dependencies import encode_principal  # noqa: E402
from tourbook.core.principal import Principal, UserRole  # noqa: E402
from tourbook.models import Tour  # noqa: E402
from tourbook.schemas.availability import CreateAvailabilityRequest  # noqa: E402
from tourbook.schemas.tour import CreateTourRequest, ItineraryDay  # noqa: E402
from tourbook.services.availability_service import AvailabilityService  # noqa: E402
from tourbook.services.tour_service import TourService  # noqa: E402

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SEED_ADMIN = Principal(user_id="seed-admin", role=UserRole.ADMIN)


def run_migrations() -> None:
    """Upgrade the configured database to the latest Alembic revision."""
    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))

    logger.info("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_sample_data() -> None:
    """Create a sample tour with weekly availabilities unless tours already exist."""
    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        existing_tours = await db.execute(select(func.count(Tour.id)))
        if existing_tours.scalar_one() > 0:
            logger.info("Sample data already exists, skipping...")
            return

        tour = await TourService(db).create_tour(
            SEED_ADMIN,
            CreateTourRequest(
                title="Northern Lights Adventure",
                description="Chase the Aurora Borealis across Iceland with expert guides",
                duration_days=3,
                price_per_person=Decimal("299.99"),
                max_group_size=12,
                itinerary=[
                    ItineraryDay(day=1, title="Arrival in Reykjavik", description="Evening aurora briefing"),
                    ItineraryDay(day=2, title="Golden Circle", description="Geysers, waterfalls and a night hunt"),
                    ItineraryDay(day=3, title="Blue Lagoon", description="Geothermal spa before departure"),
                ],
            ),
        )

        availability_service = AvailabilityService(db)
        first_start = date.today() + timedelta(days=30)
        for week in range(5):
            start = first_start + timedelta(weeks=week)
            await availability_service.create_availability(
                SEED_ADMIN,
                CreateAvailabilityRequest(
                    tour_id=tour.id,
                    start_date=start,
                    end_date=start + timedelta(days=tour.duration_days - 1),
                    total_slots=40,
                ),
            )

        logger.info("Sample data created", extra={"tour_id": str(tour.id)})

    await close_db()


def main() -> None:
    """Main setup function."""
    logger.info("Starting tourbook API setup...")

    run_migrations()
    asyncio.run(create_sample_data())

    logger.info("Setup completed successfully!")
    logger.info("Admin token for local testing: %s", encode_principal(SEED_ADMIN))
    logger.info("Start the API server with: cd server && uvicorn tourbook.main:app --reload")


if __name__ == "__main__":
    main()
