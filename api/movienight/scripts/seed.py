"""Seed a household for the configured basic-auth identity in local/dev environments."""

from __future__ import annotations

import argparse
import asyncio

from sqlalchemy.ext.asyncio import AsyncSession

from movienight.core.config import settings
from movienight.core.observability import EventLogger, configure_logging
from movienight.core.security import Identity
from movienight.db.session import async_session
from movienight.services import filter_service, household_service

DEFAULT_HOUSEHOLD_NAME = "Family"
DEFAULT_DISPLAY_NAME = "Family Admin"

events = EventLogger("movienight.scripts.seed")


def default_identity() -> Identity:
    return Identity(
        id=settings.basic_auth_default_user_id,
        email=settings.basic_auth_default_email,
        username=settings.basic_auth_user,
    )


async def seed(
    session: AsyncSession | None = None,
    *,
    household_name: str = DEFAULT_HOUSEHOLD_NAME,
    display_name: str = DEFAULT_DISPLAY_NAME,
    with_defaults: bool = True,
) -> household_service.ActiveHouseholdContext:
    """Create the identity's household once; later runs return the existing one."""
    if session is not None:
        return await _seed_session(session, household_name, display_name, with_defaults)
    async with async_session() as owned:
        return await _seed_session(owned, household_name, display_name, with_defaults)


async def _seed_session(
    session: AsyncSession, household_name: str, display_name: str, with_defaults: bool
) -> household_service.ActiveHouseholdContext:
    identity = default_identity()
    context = await household_service.resolve_active_household(session, identity)
    if context is not None:
        events.info("seed_skipped", household_id=str(context.household_id), user_id=identity.id)
        return context

    await household_service.create_household(
        session, household_name, identity=identity, display_name=display_name
    )
    context = await household_service.require_active_household(session, identity)
    if with_defaults:
        await filter_service.reset_filters(session, context.household_id)
    events.info("seed_complete", household_id=str(context.household_id), user_id=identity.id)
    return context


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Seed a household for the basic-auth identity.")
    parser.add_argument("--household-name", default=DEFAULT_HOUSEHOLD_NAME)
    parser.add_argument("--display-name", default=DEFAULT_DISPLAY_NAME)
    parser.add_argument(
        "--skip-defaults",
        action="store_true",
        help="Do not install the preset content filters.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(settings.log_level)
    asyncio.run(
        seed(
            household_name=args.household_name,
            display_name=args.display_name,
            with_defaults=not args.skip_defaults,
        )
    )


if __name__ == "__main__":
    main()
