import logging

from sqlalchemy import inspect

from db import Base, engine
from core.utils.models_pool import models_pool

logger = logging.getLogger(__name__)


def compare_and_update_schema():
    existing_tables = set(inspect(engine).get_table_names())
    model_tables = [model.__table__ for model in models_pool.values()]

    for table in model_tables:
        if table.name not in existing_tables:
            logger.info(f"Detected new table {table.name}, creating...")

    # existing tables are left untouched, new tables are created with their constraints
    Base.metadata.create_all(bind=engine, tables=model_tables)
    logger.info("Database schema updated.")


def startup_database_update():
    logger.info("Database inspection started...")
    compare_and_update_schema()
    logger.info("Database inspection completed.")
