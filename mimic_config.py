"""
MIMIC_CONFIG.PY - Runtime configuration for the mimic generator

Environment variables:
    MIMIC_STORE_BACKEND   memory | sqlite (default: memory)
    MIMIC_STORE_DB        SQLite path (default: mimic_settings.db)
    MIMIC_LOG_LEVEL       DEBUG | INFO | WARNING | ERROR (default: INFO)
"""
import os
import logging
from dataclasses import dataclass

LOG_FORMAT = '[%(asctime)s] %(levelname)s - %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'

STORE_BACKENDS = ("memory", "sqlite")


@dataclass
class MimicConfig:
    """Runtime knobs that live outside MimicSettings"""
    store_backend: str = "memory"
    store_db: str = "mimic_settings.db"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "MimicConfig":
        return cls(
            store_backend=os.getenv("MIMIC_STORE_BACKEND", "memory").strip().lower(),
            store_db=os.getenv("MIMIC_STORE_DB", "mimic_settings.db"),
            log_level=os.getenv("MIMIC_LOG_LEVEL", "INFO").strip().upper(),
        )


def configure_logging(level: str = "INFO"):
    """Set up root logging once; unknown level names fall back to INFO"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT
    )
