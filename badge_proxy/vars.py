import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "badge-proxy")
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "3000"))

DEFAULT_URL = os.environ.get("DEFAULT_URL", "")
# Unset or empty disables authentication for updates
URL_UPDATE_PASSWORD = os.environ.get("URL_UPDATE_PASSWORD") or None

READ_STRATEGY = os.getenv("READ_STRATEGY", "proxy").lower()
READ_PATH = os.environ.get("READ_PATH", "/")
WRITE_PATHS = [
    p.strip() for p in os.environ.get("WRITE_PATHS", "/,/url").split(",") if p.strip()
]

REDIRECT_STATUS_CODE = int(os.getenv("REDIRECT_STATUS_CODE", "302"))

PROXY_TIMEOUT = float(os.getenv("PROXY_TIMEOUT", "30"))
PROXY_MAX_BODY_BYTES = int(os.getenv("PROXY_MAX_BODY_BYTES", str(10 * 1024 * 1024)))
PROXY_NO_CACHE = os.getenv("PROXY_NO_CACHE", "true").lower() == "true"

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")
