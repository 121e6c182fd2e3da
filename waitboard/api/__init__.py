"""Hospital Wait Board — HTTP API."""
