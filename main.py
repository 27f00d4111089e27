import logging
import sys

import uvicorn

from server.db import Database
from server.seed import seed_admins, seed_categories
from server.settings import Settings


def configure_logging(level: int = logging.INFO):
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s: %(asctime)s %(name)s %(message)s"))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)


if __name__ == "__main__":
    configure_logging()
    settings = Settings.from_env()

    if "--seed" in sys.argv:
        database = Database(settings.database_url)
        database.create_all()
        with database.new_session() as session:
            seed_categories(session)
            seed_admins(session, settings.admins)
        database.dispose()

    uvicorn.run("server.server:app", host="0.0.0.0", port=8000)
