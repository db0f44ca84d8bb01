# run.py
import os

from dotenv import load_dotenv

from insta_api import create_app

basedir = os.path.abspath(os.path.dirname(__file__))
# .env next to this file, whatever the working directory is
load_dotenv(dotenv_path=os.path.join(basedir, '.env'))

app = create_app()

if __name__ == '__main__':
    host = os.getenv('FLASK_RUN_HOST', '127.0.0.1')
    port = int(os.getenv('FLASK_RUN_PORT', 8080))
    debug = app.config.get('DEBUG', False)
    app.run(host=host, port=port, debug=debug)
