import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

installed_apps = [
    'fleet',
]
