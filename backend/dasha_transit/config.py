import os
from pathlib import Path
from typing import Dict, Optional

from .astro.constants import ASPECT_ANGLES, AYANAMSHA_KEYS, HOUSE_CODES, NODE_TYPES


class Config:
    """Application configuration read from the environment"""

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        env = os.environ if environ is None else environ
        self.EPHE_PATH = env.get("EPHE_PATH") or None
        self.AYANAMSHA = env.get("AYANAMSHA", "LAHIRI").upper()
        self.NODE_TYPE = env.get("NODE_TYPE", "MEAN").upper()
        self.HOUSE_SYSTEM = env.get("HOUSE_SYSTEM", "WHOLE_SIGN").upper()
        self.ANTARDASHA_CACHE_SIZE = env.get("ANTARDASHA_CACHE_SIZE", "256")
        self.FLASK_ENV = env.get("FLASK_ENV", "development")
        self.LOG_LEVEL = env.get("LOG_LEVEL", "INFO")
        self.ALLOWED_ORIGINS = env.get("ALLOWED_ORIGINS", "*").split(",")
        # ORB_CONJUNCTION, ORB_SEXTILE, ... override the default orbs
        self.ORBS = {
            aspect.lower(): env[f"ORB_{aspect}"]
            for aspect in ASPECT_ANGLES
            if env.get(f"ORB_{aspect}")
        }

    def validate(self):
        """Validate configuration and coerce numeric values"""
        if self.EPHE_PATH and not Path(self.EPHE_PATH).is_dir():
            raise ValueError(f"EPHE_PATH {self.EPHE_PATH} is not a valid directory")

        if self.AYANAMSHA not in AYANAMSHA_KEYS:
            raise ValueError(f"Invalid AYANAMSHA value: {self.AYANAMSHA}. Must be one of {sorted(AYANAMSHA_KEYS)}")
        if self.NODE_TYPE not in NODE_TYPES:
            raise ValueError(f"Invalid NODE_TYPE value: {self.NODE_TYPE}. Must be one of {sorted(NODE_TYPES)}")
        if self.HOUSE_SYSTEM not in HOUSE_CODES:
            raise ValueError(f"Invalid HOUSE_SYSTEM value: {self.HOUSE_SYSTEM}. Must be one of {sorted(HOUSE_CODES)}")

        try:
            self.ANTARDASHA_CACHE_SIZE = int(self.ANTARDASHA_CACHE_SIZE)
        except ValueError:
            raise ValueError(f"ANTARDASHA_CACHE_SIZE must be an integer, got {self.ANTARDASHA_CACHE_SIZE!r}")
        if self.ANTARDASHA_CACHE_SIZE < 0:
            raise ValueError("ANTARDASHA_CACHE_SIZE must not be negative")

        for aspect, value in list(self.ORBS.items()):
            try:
                self.ORBS[aspect] = float(value)
            except ValueError:
                raise ValueError(f"ORB_{aspect.upper()} must be a number, got {value!r}")

        return True

    def to_flask(self) -> Dict[str, object]:
        return {
            "EPHE_PATH": self.EPHE_PATH,
            "AYANAMSHA": self.AYANAMSHA,
            "NODE_TYPE": self.NODE_TYPE,
            "HOUSE_SYSTEM": self.HOUSE_SYSTEM,
            "ANTARDASHA_CACHE_SIZE": self.ANTARDASHA_CACHE_SIZE,
            "FLASK_ENV": self.FLASK_ENV,
            "LOG_LEVEL": self.LOG_LEVEL,
            "ALLOWED_ORIGINS": self.ALLOWED_ORIGINS,
            "ORBS": dict(self.ORBS),
        }
