"""n8n REST API access layer with list/detail view-state controllers."""
from __future__ import annotations

__version__ = "0.1.0"
