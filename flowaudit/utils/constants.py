"""Centralized constants for flowaudit.

Single source of truth for paths, trigger classifications and the action
names the dependency extractor keys on.
"""

from pathlib import Path

# ============================================================================
# OUTPUT DIRECTORIES
# ============================================================================

STATE_DIR = Path("./.flowaudit")

ERROR_LOG_FILE = STATE_DIR / "error.log"
CONFIG_FILE_NAME = "config.json"

# ============================================================================
# TRIGGERS
# ============================================================================

# Triggers that run with elevated tokens/secrets against untrusted input
PRIVILEGED_TRIGGERS = frozenset(
    [
        "workflow_run",
        "pull_request_target",
        "repository_dispatch",
    ]
)

PUBLIC_TRIGGERS = frozenset(
    [
        "push",
        "pull_request",
        "schedule",
        "workflow_dispatch",
    ]
)

# ============================================================================
# RUNNERS AND ACTIONS
# ============================================================================

HOSTED_RUNNER_PREFIXES = ("ubuntu-", "windows-", "macos-")
SELF_HOSTED_MARKER = "self-hosted"
RUNS_ON_MARKER = "runs-on:"

FIRST_PARTY_ACTION_PREFIX = "actions/"
LOCAL_ACTION_PREFIX = "./"

UPLOAD_ARTIFACT_ACTION = "actions/upload-artifact"
DOWNLOAD_ARTIFACT_ACTION = "actions/download-artifact"
DEFAULT_ARTIFACT_NAME = "default-artifact"

# ============================================================================
# TEXT MARKERS
# ============================================================================

EXPRESSION_MARKER = "${{"
SECRET_MARKERS = ("secrets.", "${{ secrets")

# Words that mark a workflow as deploying or releasing something
PRODUCTION_MARKERS = ("production", "deploy", "release", "publish")

# ============================================================================
# ENVIRONMENT VARIABLES
# ============================================================================

ENV_PREFIX = "FLOWAUDIT"
