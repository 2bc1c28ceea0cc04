"""Static defaults and fleet layout for grpc-docker-tools."""

import os

DIR_MODE = 0o700

DEFAULT_ZONE = "asia-east1-a"
DEFAULT_PROJECT = "stoked-keyword-656"
DEFAULT_GS_ROOT = "gs://tmp-grpc-dev/admin/"
DEFAULT_DOCKERFILE_ROOT = "tools/dockerfile"
DEFAULT_GCE_SCRIPT_ROOT = "tools/gce_setup"
DEFAULT_BUILDER_HOST = "grpc-docker-builder"
DEFAULT_SSH_KEY_FILE = os.path.join("~", ".ssh", "google_compute_engine")

# Values printed by `gcloud config get-value` when a property is not set.
UNSET_CONFIG_VALUES = ("", "None", "(unset)")

FUNC_LIB_NAME = "shared_startup_funcs.sh"
REMOTE_STARTUP_DIR = "/var/local/startup_scripts"
REMOTE_FUNC_LIB = f"{REMOTE_STARTUP_DIR}/{FUNC_LIB_NAME}"
REMOTE_DOCKERFILE_ROOT = "/var/local/dockerfile"

IMAGE_PREFIX = "grpc"

SERVER_PORTS = {
    "cxx": 8010,
    "go": 8020,
    "java": 8030,
    "node": 8040,
    "python": 8050,
    "ruby": 8060,
}

CLIENT_LANGUAGES = ("cxx", "go", "java", "node", "php", "python", "ruby")
LANGUAGE_ALIASES = {"nodejs": "node"}

PROD_HOST = "grpc-test.sandbox.google.com"
PROD_PORT = 443
OAUTH_SCOPE = "https://www.googleapis.com/auth/xapi.zoo"
SERVICE_ACCOUNT_KEY_FILE = "/service_account/stubbyCloudTestingTest-7dd63462c60c.json"
DEFAULT_SERVICE_ACCOUNT = (
    "155450119199-r5aaqa2vqoa9g5mv2m6s3m1l293rlmel@developer.gserviceaccount.com"
)
