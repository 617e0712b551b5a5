"""Centralized path and constant configuration with env-var overrides.

All hardcoded paths, endpoints and magic numbers live here.  Override any
path via the corresponding TICKETS_* environment variable for portability.
The target store is resolved once at the process boundary with
get_store_id() and then passed explicitly into each transform.
"""

import os
from pathlib import Path

from errors import ConfigError

# =====================================================================
# DIRECTORY ROOTS
# =====================================================================

_SCRIPT_DIR = Path(__file__).resolve().parent

# =====================================================================
# PATHS (override via env vars for portability)
# =====================================================================

DATA_PATH = Path(os.environ.get("TICKETS_DATA_PATH", str(Path.cwd())))
HEADERS_CSV = Path(os.environ.get("TICKETS_HEADERS_CSV", str(DATA_PATH / "TicketH.csv")))
DETAILS_CSV = Path(os.environ.get("TICKETS_DETAILS_CSV", str(DATA_PATH / "TicketD.csv")))
STAGING_PATH = Path(os.environ.get("TICKETS_STAGING", str(DATA_PATH / "staging")))

# =====================================================================
# DATABASES (local store instance + remote store instance)
# =====================================================================

LOCAL_DATABASE_URL = os.environ.get(
    "TICKETS_LOCAL_DATABASE_URL", "postgresql://postgres@localhost:5432/clemente"
)
REMOTE_DATABASE_URL = os.environ.get(
    "TICKETS_REMOTE_DATABASE_URL", "postgresql://postgres@db1:5432/clemente"
)

# =====================================================================
# ENVIRONMENT
# =====================================================================

TICKETS_ENV = os.environ.get("TICKETS_ENV", "production")  # production | development

STORE_ENV_VAR = "TICKETS_STORE"


def get_store_id(value=None) -> int:
    """Resolve the target store identifier.

    An explicit value (e.g. from the CLI) wins over the TICKETS_STORE
    environment variable.  Raises ConfigError when neither is set or the
    value is not an integer.
    """
    raw = value if value is not None else os.environ.get(STORE_ENV_VAR)
    if raw is None or str(raw).strip() == "":
        raise ConfigError(f"No target store configured (pass --store or set {STORE_ENV_VAR})")
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ConfigError(f"Store identifier must be an integer, got {raw!r}") from None


# =====================================================================
# LOGGING CONFIGURATION
# =====================================================================

LOGS_PATH = Path(os.environ.get("TICKETS_LOGS", str(_SCRIPT_DIR / "logs")))
LOG_LEVEL = os.environ.get(
    "TICKETS_LOG_LEVEL",
    "DEBUG" if TICKETS_ENV == "development" else "INFO",
)

# =====================================================================
# SOURCE LAYOUTS (positional, one header line)
# =====================================================================

HEADER_COLUMNS = ["ticketId", "dateToken", "stateId", "cityId", "storeId", "employeeId"]
DETAIL_COLUMNS = ["ticketId", "productId", "units", "price", "extraColumn"]

# =====================================================================
# OUTPUT LAYOUTS (COPY column lists)
# =====================================================================

TICKETSH_COLUMNS = ["Folio", "Fecha", "IdEstado", "IdCiudad", "IdTienda", "IdEmpleado"]
TICKETSD_COLUMNS = ["Ticket", "IdProducto", "Unidades", "Precio"]
INVENTARIO_COLUMNS = ["IdSucursal", "IdProducto", "Existencia", "Minimo", "Maximo", "Precio"]

# =====================================================================
# BUSINESS CONSTANTS
# =====================================================================

# Source exports use Spanish month abbreviations
SOURCE_MONTHS = {
    "ene": 1, "feb": 2, "mar": 3, "abr": 4, "may": 5, "jun": 6,
    "jul": 7, "ago": 8, "sep": 9, "oct": 10, "nov": 11, "dic": 12,
}
# Already-translated tokens are accepted as well
ENGLISH_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}
THIRTY_DAY_MONTHS = (4, 6, 9, 11)
CENTURY = 2000

# Synthetic inventory bounds (inclusive)
STOCK_RANGE = (40, 70)
MIN_STOCK_RANGE = (10, 30)
MAX_STOCK_RANGE = (80, 100)

# =====================================================================
# REPRICING
# =====================================================================

REPRICE_WINDOW_START = "2021-01-01"
REPRICE_WINDOW_END = "2022-12-31"
REPRICE_MIN_MONTHS = 12
REPRICE_INCREMENT = 1
