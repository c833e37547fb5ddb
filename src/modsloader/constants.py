"""
Constants and configuration values for mods-loader.

This module contains all hardcoded values, URLs, timeouts, and other constants
used throughout the application.
"""

# Upstream API URLs
GITHUB_API_BASE = "https://api.github.com/repos"
GITLAB_API_BASE = "https://gitlab.com/api/v4/projects"
GITLAB_BASE = "https://gitlab.com"

# Network timeouts and delays (in seconds)
DEFAULT_REQUEST_TIMEOUT = 30
GITHUB_API_VERSION = "2022-11-28"

# Retry settings shared by API requests and artifact downloads
DEFAULT_CONNECT_RETRIES = 3
DEFAULT_BACKOFF_FACTOR = 0.3
RETRY_STATUS_FORCELIST = (408, 429, 500, 502, 503, 504)

# Variant kinds (artifact extensions) and variant restrictions
VARIANT_MT = "mtmod"
VARIANT_WOT = "wotmod"
VARIANT_KINDS = (VARIANT_MT, VARIANT_WOT)

RESTRICTION_MT_ONLY = "mt-only"
RESTRICTION_WOT_ONLY = "wot-only"
RESTRICTION_TO_VARIANT = {
    RESTRICTION_MT_ONLY: VARIANT_MT,
    RESTRICTION_WOT_ONLY: VARIANT_WOT,
}

# Source kinds
SOURCE_GITHUB = "github"
SOURCE_GITLAB_DESCRIPTION = "gitlab-description"

# Asset filename pattern: optional tag prefix, optional "_version", fixed extension
ASSET_NAME_PATTERN = r"^(.*?)_?((?:\d+\.)*(?:\d+))?\.(mtmod|wotmod)$"

# Markdown links to project uploads inside a GitLab release description
GITLAB_UPLOAD_LINK_PATTERN = (
    r"\[[^\]]*\]\((/uploads/[^()\s]*?/([^/()\s]+?\.(?:mtmod|wotmod)))\)"
)

# Canary marker in GitHub release notes, e.g. "[canary: 25]"
CANARY_MARKER_PATTERN = r"\[\s*canary\s*(?::\s*(\d+(?:\.\d+)?)\s*)?\]"
CANARY_MAX_PERCENT = 100.0

# Manifest embedded in mod archives
MANIFEST_FILE_NAME = "meta.xml"

# Store layout
MODS_DIR_NAME = "mods"
DATABASE_FILE_NAME = "mods.sqlite"
STORE_DIR_NAME = "store"

# Scheduling
DEFAULT_SYNC_HOURS = (8, 20)
DEFAULT_UPLOAD_LOCK_TIMEOUT = 300

# Configuration file names
APP_NAME = "modsloader"
DISTRIBUTION_NAME = "mods-loader"
CONFIG_FILE_NAME = "modsloader.yaml"

# Logging configuration
LOGGER_NAME = "modsloader"
LOG_FILE_NAME = "modsloader.log"
LOG_LEVEL_ENV_VAR = "MODSLOADER_LOG_LEVEL"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5

# Catalog served when the configuration does not list any mods
DEFAULT_MODS = (
    {
        "tag": "wotstat.analytics",
        "source": {
            "type": SOURCE_GITHUB,
            "owner": "wotstat",
            "repo": "wotstat-analytics",
        },
    },
    {"tag": "wotstat.positions"},
    {"tag": "wotstat.widgets"},
    {
        "tag": "me.poliroid.modslistapi-wotstat",
        "source": {
            "type": SOURCE_GITLAB_DESCRIPTION,
            "repo": "wot-public-mods/mods-list",
            "repo_id": 26509092,
        },
    },
    {
        "tag": "izeberg.modssettingsapi",
        "source": {
            "type": SOURCE_GITHUB,
            "owner": "izeberg",
            "repo": "modssettingsapi",
        },
    },
)
