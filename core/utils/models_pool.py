from settings import BASE_DIR, installed_apps
import os
import inspect

app_folders = ['core']
app_folders += [f'apps/{app_name}' for app_name in installed_apps]
models_pool = {}

for app_folder in app_folders:
    models_dir = os.path.join(BASE_DIR, app_folder, 'models')
    # check if model folder exists, if yes build models pool
    if os.path.isdir(models_dir):
        # filter files only python files, and not __init__.py
        files = [f for f in os.listdir(models_dir) if f[-3:] == '.py' and f != '__init__.py']
        for file in sorted(files):
            module_name = f'{app_folder.replace("/", ".")}.models.{file[:-3]}'
            module = __import__(module_name, fromlist=[''])
            models = [cls for name, cls in inspect.getmembers(module, inspect.isclass) if
                      # check if sqlachemy model
                      hasattr(cls, '__tablename__') and cls.__module__ == module.__name__]
            models_pool.update({model.__tablename__: model for model in models})
