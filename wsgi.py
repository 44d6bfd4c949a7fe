"""
WSGI entry point
Used by Gunicorn for production deployment
"""
import os

# Production settings unless the environment says otherwise
os.environ.setdefault('FLASK_ENV', 'production')

from dbml_canvas.web_app.app import app
from dbml_canvas.web_app.app_config import config

if hasattr(config, 'validate'):
    config.validate()

# Create the data directories
os.makedirs(app.config['PROJECTS_DIR'], exist_ok=True)
os.makedirs(os.path.dirname(os.path.abspath(app.config['AUTOSAVE_PATH'])), exist_ok=True)

if __name__ == "__main__":
    app.run(host=app.config['HOST'], port=app.config['PORT'], debug=app.config['DEBUG'])
else:
    # Application object for the WSGI server
    application = app
