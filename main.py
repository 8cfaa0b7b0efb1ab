from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from constants import CORS_ORIGINS
from core.utils.install_apps import install_apps
from core.utils.db_manager import startup_database_update
import logging
import os


logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format='%(levelname)s:     [%(asctime)s] %(name)s %(message)s',
    datefmt='%d-%m-%Y %H:%M:%S'
)


app = FastAPI(
    title='Fleet Dispatch API',
    description='Vehicles, authentication and live operations events.',
    version='1.0',
    docs_url='/'
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

startup_database_update()
install_apps(app)
