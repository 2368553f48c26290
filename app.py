"""
Development entry point for relaygate.

In production run it under a WSGI server, e.g. `gunicorn 'relaygate:create_app()'`.
"""
import os
import logging
from relaygate import create_app

app = create_app()

if __name__ == '__main__':
    port = int(os.environ.get("PORT", 5000))

    # Set FLASK_ENV=production to disable debug mode
    debug = os.environ.get('FLASK_ENV') != 'production'

    # For local development, use localhost; for production, use 0.0.0.0
    host = '127.0.0.1' if debug else '0.0.0.0'

    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO)
    logging.getLogger(__name__).info("Starting relaygate on http://%s:%s -> %s", host, port, app.config['PROXY_TARGET'] or "(no target)")
    logging.getLogger(__name__).info("Debug mode: %s", "ON" if debug else "OFF")

    app.run(host=host, port=port, debug=debug)
