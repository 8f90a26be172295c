#!/usr/bin/env python3
"""
Database management script with Docker integration.
Creates and drops the schema, seeds demo data and manages the database container.
"""

import asyncio
import sys
import subprocess
import argparse
import logging
from decimal import Decimal
from pathlib import Path

from sqlalchemy import select

from propertyhub.config import settings
from propertyhub.database import AsyncSessionLocal, create_tables, drop_tables
from propertyhub.models import Property, PropertyCategory, TransactionType, User, UserRole

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SEED_ADMIN_EMAIL = "admin@propertyhub.local"
SEED_AGENT_EMAIL = "agent@propertyhub.local"

SEED_PROPERTIES = [
    {
        "title": "Casa familiar en El Ejido",
        "description": "Casa de dos plantas con jardín y garaje para dos vehículos, cerca de la Av. Solano.",
        "price": Decimal("185000"),
        "transaction_type": TransactionType.SALE,
        "category": PropertyCategory.HOUSE,
        "bedrooms": 3,
        "bathrooms": 2.5,
        "area": 210,
        "address": "Av. Fray Vicente Solano 4-55, El Ejido",
        "city": "Cuenca",
        "state": "Azuay",
        "latitude": -2.9086,
        "longitude": -79.0066,
    },
    {
        "title": "Departamento amueblado en el centro histórico",
        "description": "Departamento con balcón y vista a la Catedral, a pasos del Parque Calderón.",
        "price": Decimal("650"),
        "transaction_type": TransactionType.RENT,
        "category": PropertyCategory.APARTMENT,
        "bedrooms": 2,
        "bathrooms": 1,
        "area": 85,
        "address": "Calle Simón Bolívar 7-40, Zona Centro",
        "city": "Cuenca",
        "state": "Azuay",
        "latitude": -2.8974,
        "longitude": -79.0045,
    },
    {
        "title": "Terreno con vista al río en Gualaceo",
        "description": "Lote plano de 1.200 m2 con servicios básicos y acceso asfaltado.",
        "price": Decimal("48000"),
        "transaction_type": TransactionType.SALE,
        "category": PropertyCategory.LAND,
        "bedrooms": 0,
        "bathrooms": 0,
        "area": 1200,
        "address": "Vía a Chordeleg km 2",
        "city": "Gualaceo",
        "state": "Azuay",
        "latitude": -2.8926,
        "longitude": -78.7780,
    },
]


class MigrationManager:
    """Manages the database schema and container."""

    def __init__(self):
        self.docker_compose_file = "docker-compose.yml"

    def run_command(self, command: list, check: bool = True) -> subprocess.CompletedProcess:
        logger.info(f"Running command: {' '.join(command)}")
        try:
            result = subprocess.run(
                command,
                check=check,
                capture_output=True,
                text=True
            )
            if result.stdout:
                logger.info(f"Command output: {result.stdout}")
            return result
        except subprocess.CalledProcessError as e:
            logger.error(f"Command failed: {e}")
            if e.stderr:
                logger.error(f"Error output: {e.stderr}")
            raise

    def is_docker_running(self) -> bool:
        try:
            result = self.run_command(["docker", "info"], check=False)
            return result.returncode == 0
        except FileNotFoundError:
            logger.error("Docker is not installed or not in PATH")
            return False

    def start_database_container(self) -> None:
        """Start the database service and wait until it accepts connections."""
        if not self.is_docker_running():
            raise RuntimeError("Docker is not running. Please start Docker first.")

        if not Path(self.docker_compose_file).exists():
            raise FileNotFoundError(f"Docker Compose file not found: {self.docker_compose_file}")

        logger.info(f"Starting database container using {self.docker_compose_file}")
        self.run_command(["docker-compose", "-f", self.docker_compose_file, "up", "-d", "db"])

        logger.info("Waiting for database to be ready...")
        self.run_command([
            "docker-compose",
            "-f", self.docker_compose_file,
            "exec", "-T", "db",
            "pg_isready", "-U", "postgres"
        ])
        logger.info("Database container is ready")

    def stop_database_container(self) -> None:
        logger.info(f"Stopping database container using {self.docker_compose_file}")
        self.run_command(["docker-compose", "-f", self.docker_compose_file, "down"])

    async def seed_database(self) -> None:
        """Create an administrator, a demo agent and a few Cuenca listings."""
        logger.info("Seeding database with initial data")

        async with AsyncSessionLocal() as session:
            try:
                result = await session.execute(select(User).where(User.email == SEED_ADMIN_EMAIL))
                if result.scalar_one_or_none():
                    logger.info("Admin user already exists, skipping seed")
                    return

                admin = User(email=SEED_ADMIN_EMAIL, name="System Administrator", role=UserRole.ADMIN)
                admin.set_password("admin123456")

                agent = User(
                    email=SEED_AGENT_EMAIL,
                    name="María Vázquez",
                    phone="+593 7 284 0000",
                    role=UserRole.AGENT
                )
                agent.set_password("agent123456")

                session.add_all([admin, agent])
                await session.flush()

                for data in SEED_PROPERTIES:
                    session.add(Property(agent_id=agent.id, **data))

                await session.commit()

                logger.info("Database seeded successfully")
                logger.info(f"  Admin: {SEED_ADMIN_EMAIL} / admin123456")
                logger.info(f"  Agent: {SEED_AGENT_EMAIL} / agent123456")
                logger.warning("Please change the seeded passwords outside development!")
            except Exception as e:
                await session.rollback()
                logger.error(f"Failed to seed database: {e}")
                raise

    async def reset_database(self) -> None:
        """Drop and recreate all tables, then seed."""
        logger.warning("Resetting database - all data will be lost!")
        await drop_tables()
        await create_tables()
        await self.seed_database()
        logger.info("Database reset completed")


def main():
    parser = argparse.ArgumentParser(description="Database management with Docker")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("create", help="Create all tables")
    subparsers.add_parser("seed", help="Seed database with demo data")

    reset_parser = subparsers.add_parser("reset", help="Drop, recreate and seed (development only)")
    reset_parser.add_argument("--confirm", action="store_true", help="Confirm database reset")

    subparsers.add_parser("start-db", help="Start database container")
    subparsers.add_parser("stop-db", help="Stop database container")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    manager = MigrationManager()
    logger.info(f"Environment: {settings.environment}")

    try:
        if args.command == "create":
            asyncio.run(create_tables())

        elif args.command == "seed":
            asyncio.run(manager.seed_database())

        elif args.command == "reset":
            if not args.confirm:
                print("Database reset requires --confirm flag")
                return
            asyncio.run(manager.reset_database())

        elif args.command == "start-db":
            manager.start_database_container()

        elif args.command == "stop-db":
            manager.stop_database_container()

    except Exception as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
