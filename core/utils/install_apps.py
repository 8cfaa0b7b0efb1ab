import csv
import importlib
import logging
import os
from datetime import datetime

from fastapi import FastAPI
from sqlalchemy import Boolean, Column, DateTime, Enum, Float, Integer
from sqlalchemy.orm import Session

from core.utils.models_pool import models_pool
from db import get_db
from settings import BASE_DIR, installed_apps

logger = logging.getLogger(__name__)


def _convert_csv_field_value(value: str, column: Column):
    column_type = type(column.type)
    if value == "":
        return None
    elif column_type == Boolean:
        return value.lower() in ["true", "1", "t", "y", "yes"]
    elif column_type == Integer:
        return int(value)
    elif column_type == Float:
        return float(value)
    elif column_type == DateTime:
        return datetime.fromisoformat(value)
    elif column_type == Enum:
        return column.type.python_type(value)
    return value


def import_csv_data(file_name: str, db: Session):
    logger.debug(f'Importing {file_name}')
    # rm the .csv extension
    model_name = os.path.basename(file_name)[:-4]
    model = models_pool.get(model_name, None)
    if not model:
        logger.error(f'No model found for data file {file_name}')
        return

    columns = model.__table__.columns
    with open(file_name, 'r', encoding='utf-8') as csv_file:
        csv_reader = csv.DictReader(csv_file)
        # check if string_id column exists, if not throw error
        if 'string_id' not in csv_reader.fieldnames:
            raise Exception(f'File {file_name} does not have required "string_id" column')

        for row in csv_reader:
            values = {
                key: _convert_csv_field_value(value, columns[key])
                for key, value in row.items() if key in columns
            }

            # check if object already exists
            obj = db.query(model).filter_by(string_id=values['string_id']).first()
            if obj:
                logger.debug(f'Skipped existing {obj}')
                continue

            obj = model(**values)
            db.add(obj)
            logger.debug(f'Added {obj}')

        db.commit()


def install_apps(fastapi_app: FastAPI):
    app_folders = ['core']
    app_folders += [f'apps/{app_name}' for app_name in installed_apps]

    with next(get_db()) as db:
        for app_folder in app_folders:
            logger.info(f'Installing app {app_folder}...')
            app_path = os.path.join(BASE_DIR, app_folder)

            # check if routers folder exists, if yes, import routers
            routers_path = os.path.join(app_path, 'routers')
            if os.path.isdir(routers_path):
                # filter files only python files, and not __init__.py
                files = [f for f in os.listdir(routers_path) if f[-3:] == '.py' and f != '__init__.py']
                for file in sorted(files):
                    module_name = f'{app_folder.replace("/", ".")}.routers.{file[:-3]}'
                    module = importlib.import_module(module_name)
                    fastapi_app.include_router(module.router)

            # check if data folder exists, if yes import data
            if os.path.isdir(os.path.join(app_path, 'data')):
                module = importlib.import_module(f'{app_folder.replace("/", ".")}.data')
                import_order = getattr(module, 'import_order', [])

                for file in import_order:
                    import_csv_data(os.path.join(app_path, 'data', file), db)
