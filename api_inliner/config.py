"""Global configuration constants for the project.

Defines paths, filenames and default build options used across the inliner
pipeline and the site builder.
"""

from __future__ import annotations

from pathlib import Path

# Project directories
PROJECT_ROOT: Path = Path(__file__).resolve().parents[1]
PACKAGE_DIR: Path = PROJECT_ROOT / "api_inliner"
LOG_DIR: Path = PROJECT_ROOT / "logs"

# Plugin identity used when tapping build hooks and in log messages
PLUGIN_NAME: str = "ApiInlinerPlugin"

# Configuration file and environment variables
DEFAULT_CONFIG_FILENAME: str = "api-inliner.json"
ENV_BUILD_MODE: str = "API_INLINER_MODE"
ENV_REQUEST_TIMEOUT: str = "API_INLINER_REQUEST_TIMEOUT"
ENV_RETRY_COUNT: str = "API_INLINER_RETRY_COUNT"
ENV_MAX_CONCURRENT_REQUESTS: str = "API_INLINER_MAX_CONCURRENT_REQUESTS"
ENV_REQUESTS_PER_MINUTE: str = "API_INLINER_REQUESTS_PER_MINUTE"
ENV_LOG_LEVEL: str = "LOG_LEVEL"
PRODUCTION_MODE: str = "production"
DEVELOPMENT_MODE: str = "development"

# Global option defaults
DEFAULT_INLINE_AS_VARIABLE: bool = True
DEFAULT_VARIABLE_PREFIX: str = "API_DATA"
DEFAULT_SAVE_AS_FILE: bool = True
DEFAULT_REQUEST_TIMEOUT_MS: int = 10000
DEFAULT_RETRY_COUNT: int = 2
DEFAULT_OUTPUT_PATH: str = ""
DEFAULT_EMIT_DECLARATION_FILE: bool = False
DEFAULT_DECLARATION_FILE_PATH: str = "api-inliner.d.ts"
DEFAULT_TYPE: str = "any"
DEFAULT_MAX_CONCURRENT_REQUESTS: int = 8
DEFAULT_REQUESTS_PER_MINUTE: int = 600
DEFAULT_HTTP_METHOD: str = "GET"
DEFAULT_ACCEPT_HEADER: str = "application/json"

# Permissions of written artifacts and declaration files
ARTIFACT_FILE_MODE: int = 0o644

# HTML injection
HEAD_CLOSE_MARKER: str = "</head>"
HTML_TEMPLATE_GLOB: str = "*.html"

# Declaration file layout
DECLARATION_HEADER: str = (
    "/**\n"
    " * Auto-generated TypeScript declarations for build-time inlined API data.\n"
    " * DO NOT EDIT DIRECTLY\n"
    " */\n"
)

# CLI defaults and logging
DEFAULT_PAGES_DIR: Path = PROJECT_ROOT / "pages"
DEFAULT_OUTPUT_DIR: Path = PROJECT_ROOT / "dist"
LOG_FILENAME_BUILD: str = "api_inliner.log"
LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
