"""Operator configuration as module-level attributes."""

import os
import tempfile

requeue_after = float(os.environ.get("TCO_REQUEUE_AFTER", "10"))
"""Seconds between two health checks of the same cluster."""

health_check_timeout = float(os.environ.get("TCO_HEALTH_CHECK_TIMEOUT", "3"))
"""Timeout, in seconds, of a cluster's ``/healthz`` request."""

request_timeout = float(os.environ.get("TCO_REQUEST_TIMEOUT", "10"))
"""Timeout, in seconds, of the reads and status writes of ToolchainClusters."""

ca_bundle_dir = os.environ.get(
    "TCO_CA_BUNDLE_DIR",
    os.path.join(tempfile.gettempdir(), "toolchain-cluster-operator"),
)
"""Directory holding the CA bundle files of the registered clusters."""
