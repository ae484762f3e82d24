import os
from dataclasses import dataclass
from decimal import Decimal

# FuelEU Maritime Referenzwert 2020 (gCO2e/MJ), Regulation (EU) 2023/1805
REFERENCE_INTENSITY = Decimal("91.16")

# Reduktionspfade gegenueber dem Referenzwert, jeweils gueltig bis zur naechsten Stufe
FUELEU_REDUCTION_STEPS = [
    (2025, Decimal("0.02")),
    (2030, Decimal("0.06")),
    (2035, Decimal("0.145")),
    (2040, Decimal("0.31")),
    (2045, Decimal("0.62")),
    (2050, Decimal("0.80")),
]

# Energie-Umrechnung: MJ pro Tonne Kraftstoff
ENERGY_PER_TONNE_MJ = Decimal("41000")

# Eingabegrenzen: Berichtsjahre bis 9999, Betraege unter 10^21 gCO2e
MAX_YEAR = 9999
MAX_AMOUNT_EXPONENT = 20

DEFAULT_DB_PATH = "data/cbledger.sqlite"
DEFAULT_DB_TIMEOUT = 5.0
DEFAULT_LOCK_RETRIES = 15


@dataclass(frozen=True)
class Settings:
    store: str = "memory"
    db_path: str = DEFAULT_DB_PATH
    db_timeout: float = DEFAULT_DB_TIMEOUT
    lock_retries: int = DEFAULT_LOCK_RETRIES
    seed_demo: bool = False
    log_level: str = "INFO"


def load_settings(environ=None) -> Settings:
    """Liest die Laufzeit-Konfiguration aus der Umgebung (CBLEDGER_*)."""
    env = os.environ if environ is None else environ
    store = env.get("CBLEDGER_STORE", "memory").strip().lower()
    if store not in ("memory", "sqlite"):
        raise ValueError(f"CONFIG_ERROR: CBLEDGER_STORE must be 'memory' or 'sqlite', got '{store}'.")
    return Settings(
        store=store,
        db_path=env.get("CBLEDGER_DB_PATH", DEFAULT_DB_PATH),
        db_timeout=float(env.get("CBLEDGER_DB_TIMEOUT", DEFAULT_DB_TIMEOUT)),
        lock_retries=int(env.get("CBLEDGER_LOCK_RETRIES", DEFAULT_LOCK_RETRIES)),
        seed_demo=env.get("CBLEDGER_SEED_DEMO", "0").strip().lower() in ("1", "true", "yes"),
        log_level=env.get("CBLEDGER_LOG_LEVEL", "INFO").upper(),
    )
