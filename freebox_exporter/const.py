"""Constants for the Freebox exporter."""

from __future__ import annotations

VERSION = "1.0.0"

DOMAIN = "freebox_exporter"

# Network-agnostic API root, resolvable from the LAN whatever the box mode
DEFAULT_API_URL = "https://mafreebox.freebox.fr/api/"

# Application identity sent with pairing and session requests
DEFAULT_APP_ID = "fr.freebox.prometheus.exporter"
DEFAULT_APP_NAME = "Prometheus Exporter"

# SSL/TLS Certificate Verification
# Hardcoded to False: the Freebox serves its API with a certificate signed by
# its own private CA, so the system trust store never validates it.
VERIFY_SSL = False

# Header carrying the session token on authenticated requests
AUTH_HEADER = "X-Fbx-App-Auth"

# Application credential file, relative to the data directory
TOKEN_FILE_NAME = "token.dat"

# Pairing: the owner validates the request on the Freebox LCD screen
DEFAULT_POLL_INTERVAL = 5  # seconds between authorization status checks
MAX_AUTHORIZATION_ATTEMPTS = 100

# Local session policy, independent of the box's own session lifetime
DEFAULT_SESSION_VALIDITY = 30 * 60  # seconds

DEFAULT_TIMEOUT = 10  # seconds, per HTTP request

# Error codes documented for the login API
API_ERROR_CODES: dict[str, str] = {
    "auth_required": "Invalid session token, or no session token sent",
    "invalid_token": "The app token you are trying to use is invalid or has been revoked",
    "pending_token": "The app token you are trying to use has not been validated by user yet",
    "insufficient_rights": "Your app permissions does not allow accessing this API",
    "denied_from_external_ip": "You are trying to get an app_token from a remote IP",
    "invalid_request": "Your request is invalid",
    "ratelimited": "Too many auth error have been made from your IP",
    "new_apps_denied": "New application token request has been disabled",
    "apps_denied": "API access from apps has been disabled",
    "internal_error": "Internal error",
}
