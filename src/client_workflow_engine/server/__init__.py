"""REST server over the engine services."""

from client_workflow_engine.server.app import create_app

__all__ = ["create_app"]
