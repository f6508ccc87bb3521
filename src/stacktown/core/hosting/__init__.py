"""Hosting platform connectors (pull request lookup, merge and retargeting)."""

from stacktown.core.hosting.abc import Connector, Proposal

__all__ = ["Connector", "Proposal"]
