from __future__ import annotations

# Build service
BUILD_CONNECT_TIMEOUT_SECONDS = 5.0
# No build deadline: the service is the only source of terminal build
# events, so receive() waits in slices of this length.
BUILD_EVENT_POLL_SECONDS = 1.0

# Build service REST API (artifact lookup)
BUILD_API_TIMEOUT_SECONDS = 10.0

# Template upload (scp to the template host)
TEMPLATE_UPLOAD_TIMEOUT_SECONDS = 120.0
