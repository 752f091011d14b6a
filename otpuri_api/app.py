"""
FLASK APP ENTRY POINT - OTPURI JSON API
=======================================

Sets up the Flask app, enables CORS and registers the otpuri blueprint.

Configuration (environment, read with the OTPURI_ prefix):
- OTPURI_ASSUME           "username" (default) or "issuer": bare labels
- OTPURI_SECRET_ENCODING  "base32" (default) or "raw": how secrets become keys
- OTPURI_DEFAULT_ISSUER   issuer used by /serialize and /generate when none given

Run:
    flask --app otpuri_api.app run
"""
import logging

from flask import Flask, jsonify
from flask_cors import CORS

from otpuri import __version__
from .routes import otpuri_bp

DEFAULT_CONFIG = {
    "ASSUME": "username",
    "SECRET_ENCODING": "base32",
    "DEFAULT_ISSUER": "",
}


def create_app(config=None) -> Flask:
    app = Flask(__name__)
    app.config.from_mapping(DEFAULT_CONFIG)
    app.config.from_prefixed_env("OTPURI")
    if config:
        app.config.from_mapping(config)

    # frontends on another origin call the API directly
    CORS(app)

    app.register_blueprint(otpuri_bp)

    @app.route('/', methods=['GET'])
    def index():
        return jsonify({
            "service": "otpuri",
            "version": __version__,
            "endpoints": sorted(
                str(rule) for rule in app.url_map.iter_rules() if str(rule).startswith('/api/')
            ),
        })

    app.logger.setLevel(logging.INFO)
    return app


app = create_app()


if __name__ == '__main__':
    app.run(host='127.0.0.1', port=5000)
