"""HTTP services for Tender Track."""

from .server import create_app, run_server

__all__ = ["create_app", "run_server"]
