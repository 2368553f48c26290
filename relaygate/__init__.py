"""
relaygate - reverse proxy that rewrites upstream responses before relaying them
"""
from flask import Flask
import os


def create_app(config=None):
    """Create and configure the Flask application"""
    app = Flask(__name__)

    # Upstream origin every request is forwarded to (e.g. http://backend.internal:8080)
    app.config['PROXY_TARGET'] = os.environ.get('PROXY_TARGET', '')
    # Redirect rewriting: replacement host, or reuse the client's Host header
    app.config['PROXY_HOST_REWRITE'] = os.environ.get('PROXY_HOST_REWRITE')
    app.config['PROXY_AUTO_REWRITE'] = os.environ.get('PROXY_AUTO_REWRITE', 'false')
    app.config['PROXY_PROTOCOL_REWRITE'] = os.environ.get('PROXY_PROTOCOL_REWRITE')
    # Either a plain domain ("" strips the attribute) or a JSON object {"old.domain": "new.domain", "*": ""}
    app.config['PROXY_COOKIE_DOMAIN_REWRITE'] = os.environ.get('PROXY_COOKIE_DOMAIN_REWRITE')
    # (connect, read) timeouts in seconds for upstream requests
    app.config['PROXY_TIMEOUT'] = (
        float(os.environ.get('PROXY_CONNECT_TIMEOUT', 75)),
        float(os.environ.get('PROXY_READ_TIMEOUT', 300)),
    )

    if config:
        app.config.update(config)

    # Ensure Flask knows it's behind a proxy (for HTTPS detection)
    # This is important when running behind nginx with SSL termination
    from werkzeug.middleware.proxy_fix import ProxyFix
    app.wsgi_app = ProxyFix(
        app.wsgi_app,
        x_for=1,
        x_proto=1,
        x_host=1,
        x_port=1,
        x_prefix=1
    )

    # Options are immutable and shared by every request
    from relaygate.features.proxy.options import ProxyOptions
    app.extensions['relaygate.options'] = ProxyOptions.from_config(app.config)

    from relaygate.features.proxy.blueprint import bp as proxy_bp
    app.register_blueprint(proxy_bp)

    return app
