from flask import Flask

from .astro.analysis import DashaTransitCalculator
from .astro.engine import SwissEphemerisProvider, swisseph_ayanamsa
from .astro.models import AspectOrbs
from .config import Config
from .logging_config import configure_logging
from .routes import bp


def create_app(position_provider=None, ayanamsa=None, config=None):
    """
    Build the Flask application.

    ``position_provider`` and ``ayanamsa`` default to Swiss Ephemeris with the
    configured AYANAMSHA; tests inject deterministic ones instead.
    """
    config = config if config is not None else Config()
    config.validate()

    app = Flask(__name__)
    app.config.update(config.to_flask())
    configure_logging(app)

    if position_provider is None:
        position_provider = SwissEphemerisProvider(config.EPHE_PATH, config.NODE_TYPE)
    if ayanamsa is None:
        ayanamsa = swisseph_ayanamsa(config.AYANAMSHA)

    app.extensions["dasha_transit"] = DashaTransitCalculator(
        position_provider,
        ayanamsa=ayanamsa,
        orbs=AspectOrbs(**config.ORBS),
        cache_size=config.ANTARDASHA_CACHE_SIZE,
    )
    app.logger.info(
        f"Engine ready - ayanamsha={config.AYANAMSHA}, nodes={config.NODE_TYPE}, houses={config.HOUSE_SYSTEM}"
    )

    # CORS (simple)
    from flask_cors import CORS
    CORS(app, resources={r"/*": {"origins": config.ALLOWED_ORIGINS}})

    app.register_blueprint(bp)

    @app.get("/healthz")
    def healthz():
        return {"ok": True}, 200
    return app
