# run_relay.py
from dotenv import load_dotenv
import os
basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(dotenv_path=os.path.join(basedir, '.env'))

from company_feed import create_relay_app

app = create_relay_app()

if __name__ == '__main__':
    host = os.getenv('FLASK_RUN_HOST', '0.0.0.0')
    port = int(os.getenv('RELAY_PORT', 3000))
    print(f"Storage relay server running on port {port}")
    app.run(host=host, port=port, debug=app.config.get('DEBUG', False), threaded=True)
