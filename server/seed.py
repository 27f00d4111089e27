import logging

from sqlalchemy import select
from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash

from server.models import Category, User
from server.settings import AdminAccount

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = (
    {"label": "Boiler Chicken", "value": "boiler", "unit": "kg"},
    {"label": "Layer Chicken", "value": "layer", "unit": "kg"},
    {"label": "Eggs", "value": "egg", "unit": "piece"},
)


def seed_categories(session: Session) -> int:
    created = 0
    for data in DEFAULT_CATEGORIES:
        if session.scalar(select(Category).where(Category.value == data["value"])) is None:
            session.add(Category(**data))
            created += 1
    session.commit()
    logger.info("Seeded %d categories", created)
    return created


def seed_admins(session: Session, admins: list[AdminAccount]) -> int:
    created = 0
    for admin in admins:
        if session.scalar(select(User).where(User.username == admin.username)) is None:
            session.add(
                User(username=admin.username, password_hash=generate_password_hash(admin.password), role="admin")
            )
            created += 1
    session.commit()
    logger.info("Seeded %d admin users", created)
    return created
