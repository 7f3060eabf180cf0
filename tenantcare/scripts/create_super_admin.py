"""
Provision the platform super-admin in the registry database.

Usage:
    tenantcare-create-super-admin --email admin@example.com --password 'S3cret-pass'
    python -m tenantcare.scripts.create_super_admin          # uses SUPER_ADMIN_* settings

Exit codes: 0 on success (including "already up to date"), 1 on errors.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from tenantcare.config.settings import Settings, get_settings
from tenantcare.core.exceptions import TenancyError
from tenantcare.core.tenancy.registry import ClinicRegistry
from tenantcare.database.async_db import RegistryDatabase
from tenantcare.services.token_service import TokenService
from tenantcare.services.validation import normalize_email, validate_password

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


async def provision_super_admin(settings: Settings, email: str, password: str) -> bool:
    """
    Create or update the super-admin record.

    Returns:
        True when the registry was changed, False when it was already up to date.
    """
    registry_db = RegistryDatabase(settings)
    try:
        await registry_db.create_schema()
        registry = ClinicRegistry(registry_db, settings)
        token_service = TokenService(settings)

        existing = await registry.get_platform_admin(email)
        if existing is not None and existing.id == settings.SUPER_ADMIN_ID:
            if token_service.verify_password(password, existing.password_hash):
                logger.info(f"Super-admin {email} already exists, nothing to do")
                return False

        _, created = await registry.upsert_platform_admin(
            settings.SUPER_ADMIN_ID, email, token_service.get_password_hash(password)
        )
        logger.info(f"Super-admin {email} {'created' if created else 'updated'}")
        return True
    finally:
        await registry_db.dispose()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or update the platform super-admin")
    parser.add_argument("--email", help="Login email (default: SUPER_ADMIN_EMAIL)")
    parser.add_argument("--password", help="Login password (default: SUPER_ADMIN_PASSWORD)")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None, settings: Optional[Settings] = None) -> int:
    args = parse_args(argv)
    settings = settings or get_settings()

    password = args.password or settings.SUPER_ADMIN_PASSWORD
    if not password:
        logger.error("No password given: pass --password or set SUPER_ADMIN_PASSWORD")
        return 1

    try:
        email = normalize_email(args.email or settings.SUPER_ADMIN_EMAIL)
        validate_password(password)
        asyncio.run(provision_super_admin(settings, email, password))
    except TenancyError as e:
        logger.error(f"Invalid super-admin data: {e}")
        return 1
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Registry error while provisioning super-admin: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
