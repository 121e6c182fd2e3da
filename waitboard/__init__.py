"""Hospital Wait Board — hospital directory with live waiting counts."""

__version__ = "0.1.0"
