"""Chat-completion providers used for stage summaries."""

from client_workflow_engine.llm.provider import ChatProvider

__all__ = ["ChatProvider"]
