# settings read once from the environment
import os


def _flag(name: str, default: bool) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() in ("1", "true", "yes", "on")


DB_PATH = os.getenv("LOCALMART_DB", "data/localmart.sqlite")
STORAGE_PATH = os.getenv("LOCALMART_STORAGE", "data/local_storage.json")

# flat fee for every non-pickup order
DELIVERY_FEE = float(os.getenv("LOCALMART_DELIVERY_FEE", "30"))
COMMISSION_RATE = float(os.getenv("LOCALMART_COMMISSION_RATE", "0.01"))

# stock is seller-managed unless this is switched on
DECREMENT_STOCK_ON_ORDER = _flag("LOCALMART_DECREMENT_STOCK", False)

# off behaves like a denied location permission
LOCATION_ENABLED = _flag("LOCALMART_LOCATION", True)
DEFAULT_LOCATION = {"lat": 28.6139, "lng": 77.2090}
DEFAULT_LOCATION_NAME = "Delhi, India"
REVERSE_GEOCODE_URL = "https://nominatim.openstreetmap.org/reverse"
IP_LOCATE_URL = "https://ipapi.co/json/"
LOCATION_TIMEOUT = 10.0

# seconds between checks for orders written by other sessions
FEED_POLL_INTERVAL = float(os.getenv("LOCALMART_POLL_INTERVAL", "2"))

DEBUG = _flag("DEBUG", False)
LOG_FILE = os.getenv("LOCALMART_LOG_FILE")
