"""Tezeus CRM: workspace-scoped WhatsApp messaging backend and client layer."""

__version__ = "1.0.0"
