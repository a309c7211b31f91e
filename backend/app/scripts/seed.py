"""
Seed categories, sample performers, a sample client and an admin.

    python -m app.scripts.seed

Idempotent: rows are matched on slug / email and only created when missing.
"""

import asyncio
from decimal import Decimal

from sqlalchemy import select

from app.core.logging import get_logger, setup_logging
from app.core.security import hash_password
from app.db.session import AsyncSessionLocal
from app.models.category import Category, PerformerCategory
from app.models.performer import Performer
from app.models.user import User, UserStatus, UserType

logger = get_logger(__name__)

SAMPLE_PASSWORD = "Password123"

CATEGORIES = [
    ("Magicians", "magicians", "Professional magicians for all types of events"),
    ("Singers", "singers", "Talented vocalists and musical performers"),
    ("DJs", "djs", "Professional DJs and music entertainment"),
    ("Comedians", "comedians", "Stand-up comedians and comedy entertainers"),
    ("Caricaturists", "caricaturists", "Artists creating fun caricature drawings"),
    ("Bands", "bands", "Live bands and musical groups"),
    ("Dancers", "dancers", "Professional dancers and dance troupes"),
    ("Children's Entertainers", "childrens-entertainers", "Fun entertainment for children's parties"),
]

PERFORMERS = [
    {
        "email": "magician@example.com",
        "first_name": "David",
        "last_name": "Magic",
        "business_name": "Magic Dave Entertainment",
        "bio": "Close-up and stage magic for weddings, corporate events and parties.",
        "location": "London",
        "base_price": Decimal("250.00"),
        "categories": ["magicians", "childrens-entertainers"],
    },
    {
        "email": "singer@example.com",
        "first_name": "Sarah",
        "last_name": "Melody",
        "business_name": "Sarah Melody Vocals",
        "bio": "Jazz, soul and pop vocals for ceremonies and receptions.",
        "location": "Manchester",
        "base_price": Decimal("400.00"),
        "categories": ["singers"],
    },
    {
        "email": "dj@example.com",
        "first_name": "Mike",
        "last_name": "Beats",
        "business_name": "DJ Mike Beats",
        "bio": "Party DJ with full sound and lighting rig.",
        "location": "Birmingham",
        "base_price": Decimal("300.00"),
        "categories": ["djs"],
    },
]


async def _get_or_create_user(db, email: str, first_name: str, last_name: str, user_type: str) -> User:
    user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
    if user:
        return user
    user = User(
        email=email,
        hashed_password=hash_password(SAMPLE_PASSWORD),
        first_name=first_name,
        last_name=last_name,
        user_type=user_type,
        status=UserStatus.ACTIVE,
        email_verified=True,
    )
    db.add(user)
    await db.flush()
    return user


async def seed() -> dict:
    created = {"categories": 0, "performers": 0}
    async with AsyncSessionLocal() as db:
        by_slug = {}
        for order, (name, slug, description) in enumerate(CATEGORIES, start=1):
            category = (await db.execute(select(Category).where(Category.slug == slug))).scalar_one_or_none()
            if not category:
                category = Category(name=name, slug=slug, description=description, sort_order=order)
                db.add(category)
                created["categories"] += 1
            by_slug[slug] = category
        await db.flush()

        for info in PERFORMERS:
            user = await _get_or_create_user(
                db, info["email"], info["first_name"], info["last_name"], UserType.PERFORMER
            )
            exists = (await db.execute(select(Performer.id).where(Performer.user_id == user.id))).scalar_one_or_none()
            if exists:
                continue
            performer = Performer(
                user_id=user.id,
                business_name=info["business_name"],
                bio=info["bio"],
                location=info["location"],
                base_price=info["base_price"],
                is_verified=True,
            )
            performer.categories = [
                PerformerCategory(category_id=by_slug[slug].id, is_primary=(i == 0))
                for i, slug in enumerate(info["categories"])
            ]
            db.add(performer)
            created["performers"] += 1

        await _get_or_create_user(db, "client@example.com", "John", "Client", UserType.CLIENT)
        await _get_or_create_user(db, "admin@example.com", "Site", "Admin", UserType.ADMIN)
        await db.commit()

    logger.info("seed_completed", **created)
    return created


def main() -> None:
    setup_logging()
    asyncio.run(seed())


if __name__ == "__main__":
    main()
