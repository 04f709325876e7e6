"""
Database setup
"""
import logging
from flask_sqlalchemy import SQLAlchemy

logger = logging.getLogger(__name__)

db = SQLAlchemy()


def init_db(app):
    """Binds the database to the Flask app and creates the tables"""
    db.init_app(app)

    with app.app_context():
        from . import models  # noqa: F401
        db.create_all()
        logger.info("Database ready at %s", app.config["SQLALCHEMY_DATABASE_URI"])
